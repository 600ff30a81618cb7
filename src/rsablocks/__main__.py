"""The Command Line Interface for the utility.

Three subcommands mirror the three stand-alone tools: `keygen` writes a key pair, `encrypt` and `decrypt` work on
files or the standard streams. Help goes to the error stream; bad options and failures exit with status 1.

Typical usage example:

    rsablocks keygen -b 1024 -s 1337
    rsa-encrypt -i message.txt -o message.enc
    python -m rsablocks decrypt -i message.enc
"""
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0
import argparse
import contextlib
import getpass
import logging
import pathlib
import sys
import typing

import rsablocks
from rsablocks import cipher
from rsablocks import numtheory

logger = logging.getLogger("rsablocks")


class HelpData(typing.NamedTuple):
    description: str
    format: typing.Callable = str
    default: typing.Any = None


def ranged(low: int, high: int) -> typing.Callable[[str], int]:
    """Argument type accepting integers within `[low, high]`."""

    def check(value: str) -> int:
        try:
            no = int(value)
        except ValueError as exc:
            raise argparse.ArgumentTypeError(f"invalid integer: {value!r}") from exc
        if not low <= no <= high:
            raise argparse.ArgumentTypeError(f"must be within {low}-{high}, inclusive.")
        return no

    return check


def default_identity() -> str:
    """The login name of the current user, taken from the environment."""
    try:
        return getpass.getuser()
    except (OSError, KeyError):
        return "anonymous"


help_dict: dict[str, HelpData] = {
    "keygen":
        HelpData("Generates a public / private key pair."),
    "encrypt":
        HelpData("Encrypts an input file using the specified public key file."),
    "decrypt":
        HelpData("Decrypts an input file using the specified private key file."),
    "bits":
        HelpData(
            description="Public modulus n must have at least <bits> bits. (50-4096)",
            format=ranged(50, 4096),
            default=1024,
        ),
    "iters":
        HelpData(
            description="Miller-Rabin iterations for primality testing. (1-500)",
            format=ranged(1, 500),
            default=50,
        ),
    "seed":
        HelpData(
            description="Random number seed. Defaults to operating system entropy.",
            format=int,
        ),
    "identity":
        HelpData(
            description="Identity signed into the public key. Defaults to the current user.",
            format=str,
        ),
    "pem":
        HelpData(
            description="Additionally export the public key as PKCS#1 PEM to this file.",
            format=pathlib.Path,
        ),
    "public_key":
        HelpData(
            description="Location of the public key file.",
            format=pathlib.Path,
            default=pathlib.Path("rsa.pub"),
        ),
    "private_key":
        HelpData(
            description="Location of the private key file.",
            format=pathlib.Path,
            default=pathlib.Path("rsa.priv"),
        ),
    "input":
        HelpData(
            description="Read input from this file. Default: standard input.",
            format=pathlib.Path,
        ),
    "output":
        HelpData(
            description="Write output to this file. Default: standard output.",
            format=pathlib.Path,
        ),
    "verbose":
        HelpData("Enable verbose output."),
}


class Parser(argparse.ArgumentParser):
    """Argument parser reporting to the error stream, failing with status 1."""

    def print_help(self, file=None):
        super().print_help(sys.stderr if file is None else file)

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def _add(parser: argparse.ArgumentParser, name: str, *flags: str) -> None:
    data = help_dict[name]
    parser.add_argument(*flags, dest=name, type=data.format, default=data.default, help=data.description)


verbosity = argparse.ArgumentParser(add_help=False)
verbosity.add_argument("--verbose", "-v", action="store_true", help=help_dict["verbose"].description)
streams = argparse.ArgumentParser(add_help=False)
_add(streams, "input", "--input", "-i")
_add(streams, "output", "--output", "-o")
corep = Parser(prog="rsablocks")
corep.add_argument("--version", "-V", action="version", version=f"%(prog)s {rsablocks.__version__}")
commands = corep.add_subparsers(dest="subcommand", title="Subcommands")

keygen = commands.add_parser("keygen", parents=[verbosity], help=help_dict["keygen"].description)
_add(keygen, "bits", "--bits", "-b")
_add(keygen, "iters", "--iters", "-i")
_add(keygen, "public_key", "--public-key", "-n")
_add(keygen, "private_key", "--private-key", "-d")
_add(keygen, "seed", "--seed", "-s")
_add(keygen, "identity", "--identity", "-u")
_add(keygen, "pem", "--pem")

encrypt = commands.add_parser("encrypt", parents=[streams, verbosity], help=help_dict["encrypt"].description)
_add(encrypt, "public_key", "--public-key", "-n")
decrypt = commands.add_parser("decrypt", parents=[streams, verbosity], help=help_dict["decrypt"].description)
_add(decrypt, "private_key", "--private-key", "-n")


@contextlib.contextmanager
def open_stream(file: pathlib.Path | None, mode: str, default: typing.IO):
    """Opens `file`, or hands out `default` (left open) if no file is given."""
    if file is None:
        yield default
        return
    if "b" in mode:
        with open(file, mode) as f:
            yield f
    else:
        with open(file, mode, encoding="ascii", newline="\n") as f:
            yield f


def run_keygen(args: argparse.Namespace) -> int:
    identity = args.identity if args.identity is not None else default_identity()
    rng = numtheory.make_rng(args.seed)
    pub, priv = rsablocks.RSAPrivKey.generate(args.bits, args.iters, identity, rng)
    logger.debug("username: %s", identity)
    logger.debug("user signature (%d bits): %d", pub.signature.bit_length(), pub.signature)
    priv.export(args.private_key)
    written = [args.private_key]
    try:
        pub.export(args.public_key)
        written.append(args.public_key)
        if args.pem is not None:
            pub.export_pem(args.pem)
    except (OSError, ValueError):
        for file in written:
            file.unlink(missing_ok=True)
        raise
    return 0


def run_encrypt(args: argparse.Namespace) -> int:
    pub = rsablocks.RSAPubKey.import_key(args.public_key)
    logger.debug("username: %s", pub.identity)
    logger.debug("user signature (%d bits): %d", pub.signature.bit_length(), pub.signature)
    logger.debug("n - modulus (%d bits): %d", pub.mod.bit_length(), pub.mod)
    logger.debug("e - public exponent (%d bits): %d", pub.expo.bit_length(), pub.expo)
    bsize = pub.bsize
    logger.debug("block size: %d bytes", bsize)
    if not pub.verify_identity():
        print("could not verify signature", file=sys.stderr)
        return 1
    with open_stream(args.input, "rb", sys.stdin.buffer) as fin, open_stream(args.output, "w", sys.stdout) as fout:
        cipher.encrypt_stream(fin, fout, pub)
    return 0


def run_decrypt(args: argparse.Namespace) -> int:
    priv = rsablocks.RSAPrivKey.import_key(args.private_key)
    logger.debug("n - modulus (%d bits): %d", priv.mod.bit_length(), priv.mod)
    logger.debug("d - private exponent (%d bits): %d", priv.expo.bit_length(), priv.expo)
    bsize = priv.bsize
    logger.debug("block size: %d bytes", bsize)
    with open_stream(args.input, "r", sys.stdin) as fin, open_stream(args.output, "wb", sys.stdout.buffer) as fout:
        cipher.decrypt_stream(fin, fout, priv)
    return 0


def main(argv: list[str] | None = None) -> int:
    """Parses the command line and runs the requested subcommand.

    Returns:
        The exit status.
    """
    args = corep.parse_args(argv)
    if not args.subcommand:
        corep.print_help()
        return 1
    logging.basicConfig(stream=sys.stderr,
                        level=logging.DEBUG if args.verbose else logging.WARNING,
                        format="%(levelname)s %(name)s: %(message)s")
    try:
        match args.subcommand:
            case "keygen":
                return run_keygen(args)
            case "encrypt":
                return run_encrypt(args)
            case "decrypt":
                return run_decrypt(args)
    except (OSError, ValueError, RuntimeError) as exc:
        print(f"{corep.prog} {args.subcommand}: {exc}", file=sys.stderr)
        return 1
    return 1


def keygen_main() -> int:
    return main(["keygen", *sys.argv[1:]])


def encrypt_main() -> int:
    return main(["encrypt", *sys.argv[1:]])


def decrypt_main() -> int:
    return main(["decrypt", *sys.argv[1:]])


if __name__ == "__main__":
    sys.exit(main())
