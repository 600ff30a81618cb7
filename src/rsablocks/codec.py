"""Marshalling of keys and message blocks.

Handles the line-oriented hexadecimal key file format, the sentinel-prefixed block framing used by the stream
cipher and the PEM armouring used for interoperable public key export.

Typical usage example:

    write_fields(path, [n, e, s], "alice")
    n, e, s, identity = read_fields(path, ["modulus", "exponent", "signature"], with_text=True)
    m = frame_block(b"Hi there!")
    unframe_block(m)
"""
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0
import base64
import pathlib
import string
from typing import Sequence

SENTINEL: bytes = b"\xff"

PEM_TYPES = {
    "PKCS1_PUB": ("-----BEGIN RSA PUBLIC KEY-----", "-----END RSA PUBLIC KEY-----"),
}

_HEX_DIGITS = frozenset(string.hexdigits)
_BASE62 = {c: no for no, c in enumerate(string.digits + string.ascii_uppercase + string.ascii_lowercase)}


def bytes_to_integer(msg: bytes) -> int:
    """Converts a byte string to an integer, big-endian.

    Args:
        msg: The bytes (AKA Octet String) to convert.

    Returns:
        The representative integer.
    """
    return int.from_bytes(msg, byteorder="big", signed=False)


def integer_to_bytes(msg: int, fixedlen: int | None = None) -> bytes:
    """Converts an integer to bytes, big-endian.

    Args:
        msg: The integer to unmarshal.
        fixedlen: The target length of the byte string. If None, the minimal length is used.

    Returns:
        The representative bytes. (AKA Octet String)
    """
    if fixedlen is None:
        fixedlen = (msg.bit_length() + 7) // 8
    return msg.to_bytes(fixedlen, byteorder="big", signed=False)


def parse_hex(field: str) -> int:
    """Strictly parses an unsigned, unprefixed hexadecimal string.

    Unlike `int(field, 16)` no prefix, sign, underscore or inner whitespace is accepted.

    Raises:
        ValueError: If the field is not plain hexadecimal.
    """
    if not field or not _HEX_DIGITS.issuperset(field):
        raise ValueError(f"Invalid hexadecimal value: {field!r}")
    return int(field, 16)


def block_size(mod: int) -> int:
    """Block capacity in bytes, sentinel included, for a modulus.

    Any integer of that many bytes is strictly smaller than the modulus.

    Raises:
        ValueError: If the modulus is too small to carry any payload next to the sentinel.
    """
    k = (mod.bit_length() - 1) // 8
    if k < 2:
        raise ValueError("Modulus too small to hold a single payload byte.")
    return k


def frame_block(payload: bytes) -> int:
    """Prefixes the payload with the sentinel and marshals it to an integer."""
    return bytes_to_integer(SENTINEL + payload)


def unframe_block(value: int) -> bytes:
    """Reverses `frame_block`.

    Args:
        value: The decrypted block representative.

    Returns:
        The payload bytes, without the sentinel.

    Raises:
        ValueError: If the sentinel is missing, e.g. due to the wrong key.
    """
    raw = integer_to_bytes(value)
    if raw[0:1] != SENTINEL:
        raise ValueError("Decryption error.")
    return raw[1:]


def identity_to_int(identity: str, mod: int) -> int:
    """Marshals an identity string into the integer that gets signed.

    Names made up solely of `0-9A-Za-z` are read as a base 62 number, digits ordered as listed, the way GMP's
    `mpz_set_str` does, so identities signed by GMP based tools verify. Any other name falls back
    to its UTF-8 bytes, big-endian.

    Args:
        identity: The identity string.
        mod: Modulus of the signing key; the representative is reduced into its range.

    Returns:
        The representative integer in `[0, mod)`.
    """
    if identity and all(c in _BASE62 for c in identity):
        value = 0
        for c in identity:
            value = value * 62 + _BASE62[c]
    else:
        value = bytes_to_integer(identity.encode("utf-8"))
    return value % mod


def write_fields(file: pathlib.Path, numbers: Sequence[int], text: str | None = None, opener=None) -> None:
    """Writes a key file, one lowercase hexadecimal number per line.

    Args:
        file: The file to write.
        numbers: The numbers, in on-disk order.
        text: Optional trailing free-text line.
        opener: Passed on to `open`, e.g. to control the creation mode.

    Raises:
        ValueError: If a number is negative or the text spans multiple lines.
    """
    if any(no < 0 for no in numbers):
        raise ValueError("Key fields must be non-negative.")
    lines = [f"{no:x}" for no in numbers]
    if text is not None:
        if "\n" in text or "\r" in text:
            raise ValueError("Text field cannot contain line breaks.")
        lines.append(text)
    with open(file, "w", encoding="utf-8", newline="\n", opener=opener) as f:
        f.write("\n".join(lines) + "\n")


def read_fields(file: pathlib.Path, names: Sequence[str], with_text: bool = False) -> list:
    """Reads a key file written by `write_fields`.

    Args:
        file: The file to read.
        names: Names of the hexadecimal fields, in on-disk order. Used for diagnostics.
        with_text: Whether a trailing free-text line follows the numbers.

    Returns:
        The parsed numbers, followed by the text line if requested.

    Raises:
        IOError: If a field is missing or malformed.
    """
    with open(file, "r", encoding="utf-8", newline="") as f:
        lines = f.read().split("\n")
    res: list = []
    for no, name in enumerate(names):
        if no >= len(lines) or not lines[no].strip():
            raise IOError(f"Key file {file} is missing the {name} field.")
        try:
            res.append(parse_hex(lines[no].strip()))
        except ValueError as exc:
            raise IOError(f"Key file {file} has a malformed {name} field.") from exc
    if with_text:
        if len(names) >= len(lines) or (len(names) == len(lines) - 1 and not lines[-1]):
            raise IOError(f"Key file {file} is missing the identity field.")
        res.append(lines[len(names)].rstrip("\r"))
    return res


def read_pem(file: pathlib.Path, subtype: str) -> bytes:
    """Reads a PEM encoded file.

    Args:
        file: The file to read.
        subtype: The subtype of PEM encoding to accept.

    Returns:
        The decoded PEM encoded file.

    Raises:
        IOError: If the file has invalid PEM encoding.
    """
    curr_type = PEM_TYPES[subtype]
    with open(file, "r", encoding="ascii") as f:
        headline = f.readline().strip()
        if headline != curr_type[0]:
            raise IOError(f"PEM Headline {headline} does not match {curr_type[0]}")
        parcel = []
        while True:
            line = f.readline().strip()
            if not line:
                raise IOError(f"PEM File does not contain footer: {curr_type[1]}")
            if line == curr_type[1]:
                break
            parcel.append(line)
    return base64.b64decode("".join(parcel))


def write_pem(file: pathlib.Path, subtype: str, data: bytes) -> None:
    """Writes a PEM encoded file.

    Args:
        file: The file to write.
        subtype: The subtype of PEM encoding to write.
        data: The data to write.
    """
    curr_type = PEM_TYPES[subtype]
    payload = base64.b64encode(data).decode()
    with open(file, "w", encoding="ascii") as f:
        f.write(curr_type[0] + "\n")
        res = "\n".join(payload[i:i + 64] for i in range(0, len(payload), 64))
        res += "\n" if res else ""
        f.write(res)
        f.write(curr_type[1] + "\n")
