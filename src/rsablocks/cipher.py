"""Block-wise RSA encryption and decryption of byte streams.

Plaintext is cut into chunks of one byte less than the block capacity of the key, each chunk is prefixed with the
sentinel byte, encrypted, and written as one hexadecimal line. Decryption reverses this line by line.

Typical usage example:

    with open("msg.txt", "rb") as fin, open("msg.enc", "w") as fout:
        encrypt_stream(fin, fout, pub)
    with open("msg.enc", "r") as fin, open("msg.out", "wb") as fout:
        decrypt_stream(fin, fout, priv)
"""
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0
import logging
import typing

from rsablocks import codec
from rsablocks import numtheory

if typing.TYPE_CHECKING:
    from rsablocks.rsa import RSAKey

logger = logging.getLogger(__name__)


def encrypt_block(message: int, e: int, n: int) -> int:
    """Encrypts a single block representative.

    Args:
        message: The int-marshalled block.
        e: The public exponent.
        n: The modulus.

    Returns:
        The ciphertext representative.

    Raises:
        ValueError: If the block is 0 or 1, which every exponent maps onto itself, or does not fit the modulus.
    """
    if message in (0, 1):
        raise ValueError("Cannot encrypt block that has value of 0 or 1")
    if not 0 <= message < n:
        raise ValueError("Message representative must be in range [0, mod-1]")
    return numtheory.pow_mod(message, e, n)


def decrypt_block(ciphertext: int, d: int, n: int) -> int:
    """Decrypts a single block representative.

    Raises:
        ValueError: If the ciphertext does not fit the modulus.
    """
    if not 0 <= ciphertext < n:
        raise ValueError("Ciphertext representative must be in range [0, mod-1]")
    return numtheory.pow_mod(ciphertext, d, n)


def encrypt_stream(infile: typing.BinaryIO, outfile: typing.TextIO, key: "RSAKey") -> int:
    """Encrypts `infile` until exhausted, writing one hexadecimal line per block.

    Blocks that cannot be encrypted are skipped with a warning, the remaining blocks are still processed.

    Args:
        infile: Binary stream of plaintext.
        outfile: Text stream receiving the ciphertext.
        key: The public key.

    Returns:
        The number of blocks written.
    """
    chunk = key.bsize - 1
    written = 0
    index = 0
    while True:
        payload = infile.read(chunk)
        if not payload:
            break
        index += 1
        try:
            c = encrypt_block(codec.frame_block(payload), key.expo, key.mod)
        except ValueError as exc:
            logger.warning("Skipping block %d: %s", index, exc)
            continue
        outfile.write(f"{c:x}\n")
        written += 1
    logger.debug("Encrypted %d of %d blocks of up to %d bytes.", written, index, chunk)
    return written


def decrypt_stream(infile: typing.TextIO, outfile: typing.BinaryIO, key: "RSAKey") -> int:
    """Decrypts `infile` line by line, writing the recovered plaintext.

    Args:
        infile: Text stream of hexadecimal ciphertext lines. Blank lines are ignored.
        outfile: Binary stream receiving the plaintext.
        key: The private key.

    Returns:
        The number of blocks decrypted.

    Raises:
        ValueError: If a line is not a valid ciphertext for this key.
    """
    blocks = 0
    for lineno, line in enumerate(infile, start=1):
        line = line.strip()
        if not line:
            continue
        try:
            c = codec.parse_hex(line)
            payload = codec.unframe_block(decrypt_block(c, key.expo, key.mod))
        except ValueError as exc:
            raise ValueError(f"Line {lineno}: {exc}") from exc
        outfile.write(payload)
        blocks += 1
    logger.debug("Decrypted %d blocks.", blocks)
    return blocks
