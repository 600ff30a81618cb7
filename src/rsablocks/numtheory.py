"""Number-theoretic primitives the RSA layer is built upon.

Provides the Euclidean algorithm, modular inverse, square-and-multiply modular exponentiation, the Miller-Rabin
primality test and random prime generation. All randomness is drawn from an explicitly passed generator, so a seeded
generator reproduces the exact same primes.

Typical usage example:

    rng = make_rng(1337)
    p = make_prime(512, 50, rng)
    d = mod_inverse(65537, p - 1)
"""
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0
import random
import secrets

_SMALL_PRIMES: list[int] = []
_SMALL_PRIMES_CAP: int = 0
_TRIAL_DIVISION_CAP: int = 541


def make_rng(seed: int | None = None) -> random.Random:
    """Create the random generator threaded through key generation.

    Args:
        seed: Seed for a reproducible generator. If None, the OS entropy source is used instead.

    Returns:
        A `random.Random` compatible generator.
    """
    if seed is None:
        return secrets.SystemRandom()
    return random.Random(seed)


def gcd(a: int, b: int) -> int:
    """Greatest common divisor of two non-negative integers, via the Euclidean algorithm."""
    while b != 0:
        a, b = b, a % b
    return a


def mod_inverse(a: int, n: int) -> int | None:
    """Computes the modular inverse with the Extended Euclidean Algorithm.

    Only the coefficient of `a` is tracked, as the one for `n` is never needed.

    Args:
        a: The number to invert.
        n: The modulus. Must be positive.

    Returns:
        The inverse of `a` in range `[0, n)`, or None if `a` is not invertible modulo `n`.

    Raises:
        ValueError: If `n` is not positive.
    """
    if n <= 0:
        raise ValueError("Modulus must be positive")
    r0, r1 = n, a
    t0, t1 = 0, 1
    while r1 != 0:
        q = r0 // r1
        r0, r1 = r1, r0 - q * r1
        t0, t1 = t1, t0 - q * t1
    if r0 > 1:
        return None
    return t0 % n


def pow_mod(base: int, exponent: int, modulus: int) -> int:
    """Square-and-multiply modular exponentiation.

    Args:
        base: The base.
        exponent: The exponent. Must be non-negative.
        modulus: The modulus. Must be positive.

    Returns:
        `base**exponent % modulus`

    Raises:
        ValueError: If the exponent is negative or the modulus is not positive.
    """
    if modulus <= 0:
        raise ValueError("Modulus must be positive")
    if exponent < 0:
        raise ValueError("Exponent must be non-negative")
    result = 1 % modulus
    p = base % modulus
    while exponent > 0:
        if exponent & 1:
            result = (result * p) % modulus
        p = (p * p) % modulus
        exponent >>= 1
    return result


def _sieve(n: int = 10000) -> list[int]:
    """Implements the Sieve of Eratosthenes.

    Uses the textbook Sieve of Eratosthenes to generate a set of primes up to `n`.
    Includes memory space optimization and sieving until root.

    Args:
        n: The number up to which to generate primes. Must be >= 0.

    Returns:
        A list of primes up to `n`.
    """
    if n < 2:
        return []
    i_size = (n - 1) // 2
    candidate: list[bool] = [True] * i_size
    for i in range(int(n**0.5) // 2):
        if candidate[i]:
            r = 2 * i + 3
            for j in range((r * r - 3) // 2, i_size, r):
                candidate[j] = False
    result = [2] + [(no * 2 + 3) for no, ele in enumerate(candidate) if ele]
    return result


def get_pre_primes(n: int = _TRIAL_DIVISION_CAP, change: bool = False) -> list[int]:
    """Get the small primes, automatically generating if necessary.

    Uses `_SMALL_PRIMES` as a cache. Regeneration occurs if the requested range is greater, forced by `change` or
    the cache is empty.

    Args:
        n: The number up to which to generate primes. Must be >= 0.
        change: Whether to force a recomputation of primes. Defaults to False.

    Returns:
        List of primes in ascending order, at least up to `n`.
    """
    if n < 0:
        raise ValueError("n must be >= 0")
    global _SMALL_PRIMES
    global _SMALL_PRIMES_CAP
    if n > _SMALL_PRIMES_CAP or change or not _SMALL_PRIMES:
        _SMALL_PRIMES = _sieve(n)
        _SMALL_PRIMES_CAP = n
    return _SMALL_PRIMES


def _trial_division(no: int) -> bool:
    """Check the candidate against every odd prime from 3 to 541.

    Only odd primes are tried, as any odd composite divisor implies a smaller prime one.

    Args:
        no: The number to check. Must be odd and positive.

    Returns:
        False if `no` has a small divisor other than itself, True otherwise.
    """
    for prime in get_pre_primes(_TRIAL_DIVISION_CAP)[1:]:
        if prime > _TRIAL_DIVISION_CAP:
            break
        if no % prime == 0 and no != prime:
            return False
    return True


def is_prime(n: int, iters: int, rng: random.Random | None = None) -> bool:
    """Perform the Miller-Rabin primality test.

    Runs exactly `iters` rounds, each with a uniformly random witness from `[2, n-2]`.

    Args:
        n: The integer to test.
        iters: Number of Miller-Rabin rounds. Must be >= 1.
        rng: Source of the witnesses. Defaults to the OS entropy source.

    Returns:
        True if `n` is probably prime, False if it is certainly composite.
    """
    if iters < 1:
        raise ValueError("At least one Miller-Rabin iteration is required")
    if n < 2:
        return False
    if n <= 3:
        return True
    if n % 2 == 0:
        return False
    if rng is None:
        rng = secrets.SystemRandom()
    tw = n - 1
    s = (tw & -tw).bit_length() - 1
    r = tw >> s
    for _ in range(iters):
        witness = rng.randint(2, n - 2)
        y = pow_mod(witness, r, n)
        if y == 1 or y == tw:
            continue
        for _ in range(1, s):
            y = pow_mod(y, 2, n)
            if y == tw:
                break
            if y == 1:
                return False
        else:
            return False
    return True


def make_prime(bits: int, iters: int, rng: random.Random | None = None) -> int:
    """Generate a probable prime of exactly `bits` bits.

    Candidates are drawn at random, made odd and filtered with trial division before the more expensive
    Miller-Rabin test is run.

    Args:
        bits: Exact bit length of the prime. Must be >= 2.
        iters: Number of Miller-Rabin rounds per candidate.
        rng: Source of randomness. Defaults to the OS entropy source.

    Returns:
        A probable prime.

    Raises:
        ValueError: If `bits` is too small.
        RuntimeError: If generation loops way beyond a reasonable time and a bit.
    """
    if bits < 2:
        raise ValueError("Prime size must be at least 2 bits")
    if rng is None:
        rng = secrets.SystemRandom()
    rep_cap = bits * 100 + 1000
    for _ in range(rep_cap):
        candidate = rng.getrandbits(bits)
        if candidate.bit_length() != bits:
            continue
        candidate |= 1
        if not _trial_division(candidate):
            continue
        if is_prime(candidate, iters, rng):
            return candidate
    raise RuntimeError(f"Run an improbable {rep_cap} amount of loops with no prime found. Check random number generator.")
