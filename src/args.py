"""Argument parsing functionality for thunderbridge."""

import argparse


def _add_common_arguments(parser):
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str.upper,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        default='INFO')
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)
    parser.add_argument("-r", "--root",
                        dest="ROOT",
                        help="Bridge root directory (git work tree holding Communities/ and Packages/)",
                        action="store",
                        type=str,
                        default=".")


def build_parser():
    """Build the top-level parser with its subcommands."""
    parser = argparse.ArgumentParser(
        prog="thunderbridge",
        description=(
            "thunderbridge - Bridge NuGet packages and their dependencies into Thunderstore"
        ),
        add_help=True,
    )
    subparsers = parser.add_subparsers(dest="COMMAND", metavar="COMMAND")
    subparsers.required = True

    version_parser = subparsers.add_parser(
        "version",
        help="Print the version derived from v-prefixed git tags",
    )
    _add_common_arguments(version_parser)

    resolve_parser = subparsers.add_parser(
        "resolve",
        help="Resolve the NuGet package versions to bridge for a community",
    )
    _add_common_arguments(resolve_parser)
    resolve_parser.add_argument("-c", "--community",
                                dest="COMMUNITY",
                                help="Thunderstore community slug (Communities/<slug>.json)",
                                action="store",
                                type=str,
                                required=True)
    resolve_parser.add_argument("-p", "--package",
                                dest="PACKAGES",
                                help="Resolve this NuGet package id instead of Packages/*.json (repeatable)",
                                action="append",
                                type=str,
                                default=[])
    resolve_parser.add_argument("--framework",
                                dest="FRAMEWORK",
                                help="Override the community's runtime framework moniker, i.e: netstandard2.1",
                                action="store",
                                type=str)
    resolve_parser.add_argument("--source",
                                dest="SOURCE",
                                help="NuGet V3 service index URL",
                                action="store",
                                type=str)
    resolve_parser.add_argument("--prerelease",
                                dest="PRERELEASE",
                                help="Consider pre-release NuGet versions",
                                action="store_true")
    resolve_parser.add_argument("--skip-deployed",
                                dest="SKIP_DEPLOYED",
                                help="Drop packages whose current version is already on Thunderstore",
                                action="store_true")
    resolve_parser.add_argument("-o", "--output",
                                dest="OUTPUT",
                                help="Path to JSON output file",
                                action="store",
                                type=str)
    return parser


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    return build_parser().parse_args(argv)
