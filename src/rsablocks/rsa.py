"""Provides the RSA key classes, such as key generation, import and export and the block primitives.

The public key carries a signature over an identity string, allowing the holder of the public key file to check it
was produced by the owner of the matching private key. Keys are exchanged through a plain line-oriented hexadecimal
format, the public key can additionally be exported to PKCS#1 PEM for use with other tooling.

Typical usage example:

    pub, priv = RSAPrivKey.generate(1024, 50, "alice")
    pub.export("rsa.pub")
    priv.export("rsa.priv")
    c = pub.encrypt_block(0xFF00)
    m = priv.decrypt_block(c)
"""
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0
import os
import pathlib
import random

from pyasn1.codec.der import decoder
from pyasn1.codec.der import encoder
from pyasn1.codec.native import encoder as localize
from pyasn1_modules import rfc8017

from rsablocks import cipher
from rsablocks import codec
from rsablocks import keygen

PUB_FIELDS = ("modulus", "exponent", "signature")
PRIV_FIELDS = ("modulus", "private exponent")


def _check_modulus(file: pathlib.Path, mod: int) -> None:
    if mod < 2:
        raise IOError(f"Key file {file} has a malformed modulus field.")


def _private_opener(path, flags):
    """Opener creating files with owner-only read/write permission."""
    return os.open(path, flags, 0o600)


class RSAKey:
    """The overall RSA key class implementation.

    Acts mostly as a template for the "core" components of a RSA Key that are strictly mandatory in both a public
    and a private key.

    Attributes:
        mod: The modulus of the keypair.
        expo: The exponent of the key, whether private or public.
    """

    def __init__(self, mod: int, expo: int) -> None:
        self.mod = mod
        self.expo = expo

    @property
    def bsize(self) -> int:
        """The block capacity in bytes, sentinel included. Raises ValueError for too small moduli."""
        return codec.block_size(self.mod)


class RSAPubKey(RSAKey):
    """A Public Key, with the identity it was issued for.

    Attributes:
        mod: The modulus of the keypair.
        expo: The public exponent.
        signature: Signature of the identity, made with the private key.
        identity: The identity string the key was issued for.
    """

    def __init__(self, mod: int, expo: int, signature: int | None = None, identity: str | None = None) -> None:
        super().__init__(mod, expo)
        self.signature = signature
        self.identity = identity

    def verify_identity(self) -> bool:
        """Verify the embedded signature against the embedded identity.

        Returns:
            True if the identity was signed by the matching private key, False otherwise or if either is absent.
        """
        if self.signature is None or self.identity is None:
            return False
        message = codec.identity_to_int(self.identity, self.mod)
        return keygen.verify(message, self.signature, self.expo, self.mod)

    def encrypt_block(self, message: int) -> int:
        """Encrypt a single framed block. See `cipher.encrypt_block`."""
        return cipher.encrypt_block(message, self.expo, self.mod)

    def export(self, file: pathlib.Path) -> None:
        """Export the Public RSA key to file.

        Args:
            file: The file to export the public key to.

        Raises:
            ValueError: If the key carries no signed identity.
        """
        if self.signature is None or self.identity is None:
            raise ValueError("Only keys with a signed identity can be exported.")
        codec.write_fields(file, (self.mod, self.expo, self.signature), self.identity)

    @classmethod
    def import_key(cls, file: pathlib.Path) -> "RSAPubKey":
        """Import the Public RSA key from file.

        Args:
            file: The file to import the public key from.

        Returns:
            An RSAPubKey object with the imported public key.
        """
        mod, expo, signature, identity = codec.read_fields(file, PUB_FIELDS, with_text=True)
        _check_modulus(file, mod)
        return cls(mod, expo, signature, identity)

    def export_pem(self, file: pathlib.Path) -> None:
        """Export the modulus and exponent as a PKCS#1 PEM file.

        The signed identity has no place in PKCS#1 and is not exported.

        Args:
            file: The file to export the public key to.
        """
        keydata = rfc8017.RSAPublicKey()
        keydata["modulus"] = self.mod
        keydata["publicExponent"] = self.expo
        encdata = encoder.encode(keydata)
        codec.write_pem(file, "PKCS1_PUB", encdata)

    @classmethod
    def import_pem(cls, file: pathlib.Path) -> "RSAPubKey":
        """Import a PKCS#1 PEM public key, without identity.

        Args:
            file: The file to import the public key from.

        Returns:
            An RSAPubKey object with the imported public key.
        """
        payload = codec.read_pem(file, "PKCS1_PUB")
        keydata, _ = decoder.decode(payload, asn1Spec=rfc8017.RSAPublicKey())
        pykeyd = localize.encode(keydata)
        return cls(pykeyd["modulus"], pykeyd["publicExponent"])


class RSAPrivKey(RSAKey):
    """RSA Private Key class implementation.

    Holds solely the modulus and private exponent, the primes are discarded after generation.
    """

    def decrypt_block(self, message: int) -> int:
        """Decrypt a single block. See `cipher.decrypt_block`."""
        return cipher.decrypt_block(message, self.expo, self.mod)

    def sign_identity(self, identity: str) -> int:
        """Signs an identity string with the private key.

        Args:
            identity: The identity to sign.

        Returns:
            The signature.
        """
        return keygen.sign(codec.identity_to_int(identity, self.mod), self.expo, self.mod)

    def export(self, file: pathlib.Path) -> None:
        """Exports the RSA Private Key to a file, readable and writable by the owner only.

        Args:
            file: The file to export to.
        """
        codec.write_fields(file, (self.mod, self.expo), opener=_private_opener)
        os.chmod(file, 0o600)

    @classmethod
    def import_key(cls, file: pathlib.Path) -> "RSAPrivKey":
        """Imports the RSA Private Key from a file.

        Args:
            file: The file to import.

        Returns:
            The imported RSA Private Key.
        """
        mod, expo = codec.read_fields(file, PRIV_FIELDS)
        _check_modulus(file, mod)
        return cls(mod, expo)

    @classmethod
    def generate(cls,
                 size: int,
                 iters: int,
                 identity: str,
                 rng: random.Random | None = None) -> tuple[RSAPubKey, "RSAPrivKey"]:
        """Generates an RSA key pair, with the public key signed for `identity`.

        Args:
            size: The size of the RSA Key in bits.
            iters: Number of Miller-Rabin iterations per prime.
            identity: The identity to sign into the public key.
            rng: Source of randomness. Defaults to the OS entropy source.

        Returns:
            A tuple of (public key, private key).
        """
        p, q, n, e = keygen.make_public_key(size, iters, rng)
        d = keygen.make_private_key(e, p, q)
        del p, q
        priv = cls(n, d)
        pub = RSAPubKey(n, e, priv.sign_identity(identity), identity)
        return pub, priv
