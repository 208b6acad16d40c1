"""Command-line options of the explorer."""

from __future__ import annotations

import argparse
import sys
from typing import Any, Optional, Sequence

DESCRIPTION = "xmrblocks, Onion Monero Blockchain Explorer"

_TRUE_WORDS = frozenset({"", "1", "true", "yes", "on"})
_FALSE_WORDS = frozenset({"0", "false", "no", "off"})

# (long name, short letter, kind, default, help)
_OPTIONS: tuple[tuple[str, Optional[str], str, Any, str], ...] = (
    ("help", "h", "bool", False, "produce help message"),
    ("testnet", "t", "bool", False, "use testnet blockchain"),
    ("stagenet", "s", "bool", False, "use stagenet blockchain"),
    ("enable-pusher", None, "bool", False, "enable signed transaction pusher"),
    ("enable-randomx", None, "bool", False, "enable generation of randomx code"),
    ("enable-mixin-details", None, "bool", False,
     "enable mixin details for key images, e.g., timescale, mixin of mixins, in tx context"),
    ("enable-key-image-checker", None, "bool", False, "enable key images file checker"),
    ("enable-output-key-checker", None, "bool", False, "enable outputs key file checker"),
    ("enable-json-api", None, "bool", False, "enable JSON REST api"),
    ("enable-as-hex", None, "bool", False,
     "enable links to provide hex represtations of a tx and a block"),
    ("enable-autorefresh-option", None, "bool", False,
     "enable users to have the index page on autorefresh"),
    ("enable-emission-monitor", None, "bool", False,
     "enable Monero total emission monitoring thread"),
    ("port", "p", "str", "8081", "default explorer port"),
    ("bindaddr", "x", "str", "0.0.0.0", "default bind address for the explorer"),
    ("testnet-url", None, "str", "",
     "you can specify testnet url, if you run it on mainnet or stagenet. "
     "link will show on front page to testnet explorer"),
    ("stagenet-url", None, "str", "",
     "you can specify stagenet url, if you run it on mainnet or testnet. "
     "link will show on front page to stagenet explorer"),
    ("mainnet-url", None, "str", "",
     "you can specify mainnet url, if you run it on testnet or stagenet. "
     "link will show on front page to mainnet explorer"),
    ("no-blocks-on-index", None, "str", "10", "number of last blocks to be shown on index page"),
    ("mempool-info-timeout", None, "str", "5000",
     "maximum time, in milliseconds, to wait for mempool data for the front page"),
    ("mempool-refresh-time", None, "str", "5",
     "time, in seconds, for each refresh of mempool state"),
    ("concurrency", "c", "size", 0,
     "number of threads handling http queries. "
     "Default is 0 which means it is based you on the cpu"),
    ("bc-path", "b", "str", None,
     "path to lmdb folder of the blockchain, e.g., ~/.bitmonero/lmdb"),
    ("ssl-crt-file", None, "str", None, "path to crt file for ssl (https) functionality"),
    ("ssl-key-file", None, "str", None, "path to key file for ssl (https) functionality"),
    ("daemon-login", None, "str", None, "Specify username[:password] for daemon RPC client"),
    ("daemon-url", "d", "str", "127.0.0.1:18081", "Monero daemon url"),
    ("enable-mixin-guess", None, "bool", False,
     "enable guessing real outputs in key images based on viewkey"),
)


def _parse_bool(text: str) -> bool:
    word = text.strip().lower()
    if word in _TRUE_WORDS:
        return True
    if word in _FALSE_WORDS:
        return False
    raise argparse.ArgumentTypeError(f"invalid bool value: {text!r}")


def _parse_size(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid number: {text!r}") from None
    if value < 0:
        raise argparse.ArgumentTypeError(f"value must not be negative: {text!r}")
    return value


class _RaisingParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:  # type: ignore[override]
        raise ValueError(message)


def _flag_strings(name: str, short: Optional[str]) -> list[str]:
    flags = [f"--{name}"]
    if short:
        flags.insert(0, f"-{short}")
    return flags


def build_parser() -> argparse.ArgumentParser:
    """Build the parser for the explorer's options; errors raise ValueError."""
    parser = _RaisingParser(prog="xmrblocks", description=DESCRIPTION, add_help=False)
    for name, short, kind, default, help_text in _OPTIONS:
        flags = _flag_strings(name, short)
        if kind == "bool":
            parser.add_argument(
                *flags, dest=name, nargs="?", const=True, default=default,
                type=_parse_bool, metavar="BOOL", help=help_text,
            )
        elif kind == "size":
            parser.add_argument(
                *flags, dest=name, default=default, type=_parse_size, help=help_text,
            )
        else:
            parser.add_argument(*flags, dest=name, default=default, help=help_text)
    return parser


def _bool_flag_strings() -> frozenset[str]:
    return frozenset(
        flag
        for name, short, kind, _, _ in _OPTIONS
        if kind == "bool"
        for flag in _flag_strings(name, short)
    )


def _attach_implicit_values(argv: Sequence[str]) -> list[str]:
    """Give bare boolean flags an explicit value so they never swallow the next token."""
    bool_flags = _bool_flag_strings()
    result = []
    for position, token in enumerate(argv):
        if token == "--":
            result.extend(argv[position:])
            break
        result.append(f"{token}=true" if token in bool_flags else token)
    return result


class CmdLineOptions:
    """Parsed command-line options, looked up by their long names."""

    def __init__(self, argv: Optional[Sequence[str]] = None) -> None:
        if argv is None:
            argv = sys.argv[1:]
        self._parser = build_parser()
        namespace = self._parser.parse_args(_attach_implicit_values(list(argv)))
        self._values = {key: value for key, value in vars(namespace).items() if value is not None}
        if self._values.get("help"):
            sys.stdout.write(self.format_help() + "\n")

    def get_option(self, name: str) -> Any:
        """Return the option's value, or None when it was neither given nor defaulted."""
        return self._values.get(name)

    def format_help(self) -> str:
        """Return the help text describing every option."""
        return self._parser.format_help()