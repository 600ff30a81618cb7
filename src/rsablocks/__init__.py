"""Textbook RSA from first principles, applied block-wise to byte streams.

Provides key pair generation with Miller-Rabin probable primes, encryption and decryption of arbitrary byte streams
in sentinel-framed blocks, and signing of an identity string embedded in the public key file.

Typical usage example:

    pub, priv = RSAPrivKey.generate(1024, 50, "alice", make_rng(1337))
    with open("msg.txt", "rb") as fin, open("msg.enc", "w") as fout:
        encrypt_stream(fin, fout, pub)
"""
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0
from rsablocks.cipher import decrypt_stream
from rsablocks.cipher import encrypt_stream
from rsablocks.keygen import make_private_key
from rsablocks.keygen import make_public_key
from rsablocks.numtheory import is_prime
from rsablocks.numtheory import make_prime
from rsablocks.numtheory import make_rng
from rsablocks.rsa import RSAPrivKey
from rsablocks.rsa import RSAPubKey

__version__ = "0.0.1"
__all__ = [
    "RSAPrivKey",
    "RSAPubKey",
    "encrypt_stream",
    "decrypt_stream",
    "make_public_key",
    "make_private_key",
    "is_prime",
    "make_prime",
    "make_rng",
]
