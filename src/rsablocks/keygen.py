"""Core Key Generation Utility, deriving RSA key material from random primes.

The modulus is split unevenly between the two primes, and the public exponent is a random value of the full key
size coprime to Carmichael's function of the modulus, rather than a fixed constant.

Typical usage example:

    rng = numtheory.make_rng(1337)
    p, q, n, e = make_public_key(1024, 50, rng)
    d = make_private_key(e, p, q)
    s = sign(42, d, n)
    verify(42, s, e, n)
"""
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0
import logging
import random
import secrets

from rsablocks import numtheory

logger = logging.getLogger(__name__)


def carmichael(p: int, q: int) -> int:
    """Carmichael's function of `p * q`, for distinct primes `p` and `q`.

    Args:
        p: Prime 1.
        q: Prime 2.

    Returns:
        `lcm(p - 1, q - 1)`
    """
    pm, qm = p - 1, q - 1
    return (pm * qm) // numtheory.gcd(pm, qm)


def make_public_key(total_bits: int,
                    iters: int,
                    rng: random.Random | None = None) -> tuple[int, int, int, int]:
    """Generates the public part of an RSA key pair.

    The bits of `p` are drawn uniformly from `[total_bits / 4, 3 * total_bits / 4)`, `q` receives the rest.

    Args:
        total_bits: The target size of the modulus in bits. Must be at least 8.
        iters: Number of Miller-Rabin iterations to perform for each prime.
        rng: Source of randomness. Defaults to the OS entropy source.

    Returns:
        A tuple of (p, q, modulus, public exponent).

    Raises:
        ValueError: If `total_bits` is too small to split into two primes.
    """
    if total_bits < 8:
        raise ValueError("Key size must be at least 8 bits.")
    if rng is None:
        rng = secrets.SystemRandom()
    pbits = rng.randrange(total_bits // 4, (3 * total_bits) // 4)
    qbits = total_bits - pbits
    p = numtheory.make_prime(pbits, iters, rng)
    q = numtheory.make_prime(qbits, iters, rng)
    while p == q:  # (Un)Likely story.
        q = numtheory.make_prime(qbits, iters, rng)
    n = p * q
    lam = carmichael(p, q)
    while True:
        e = rng.getrandbits(total_bits)
        if e.bit_length() == total_bits and numtheory.gcd(e, lam) == 1:
            break
    logger.debug("p (%d bits): %d", p.bit_length(), p)
    logger.debug("q (%d bits): %d", q.bit_length(), q)
    logger.debug("n - modulus (%d bits): %d", n.bit_length(), n)
    logger.debug("e - public exponent (%d bits): %d", e.bit_length(), e)
    return p, q, n, e


def make_private_key(e: int, p: int, q: int) -> int:
    """Derives the private exponent.

    Args:
        e: The public exponent, coprime to Carmichael's function of `p * q`.
        p: Prime 1.
        q: Prime 2.

    Returns:
        The private exponent `d`.

    Raises:
        RuntimeError: If `e` has no inverse, meaning the key material is inconsistent.
    """
    d = numtheory.mod_inverse(e, carmichael(p, q))
    if d is None:
        raise RuntimeError("Public exponent is not invertible. Key material is inconsistent.")
    logger.debug("d - private exponent (%d bits): %d", d.bit_length(), d)
    return d


def sign(message: int, d: int, n: int) -> int:
    """Signs an int-marshalled message with the private exponent."""
    return numtheory.pow_mod(message, d, n)


def verify(message: int, signature: int, e: int, n: int) -> bool:
    """Checks `signature` against `message` with the public exponent."""
    return numtheory.pow_mod(signature, e, n) == message
