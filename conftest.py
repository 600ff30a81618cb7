"""Configures pytest further."""
import random

import pytest

from rsablocks import numtheory
from rsablocks import rsa

TEST_SEED = 17092025


def pytest_addoption(parser):
    parser.addoption("--skip-slow", action="store_true", default=False, help="skip slower tests")
    parser.addoption("--run-extreme", action="store_true", default=False, help="run extreme value extremely slow tests")


def pytest_collection_modifyitems(config, items):
    skipdict = {}
    if config.getoption("--skip-slow"):
        skipdict["slow"] = pytest.mark.skip(reason="Slow test: needs no --skip-slow option")
    if not config.getoption("--run-extreme"):
        skipdict["extreme"] = pytest.mark.skip(reason="Extreme test: needs --run-extreme option")
    if not skipdict:
        return
    for item in items:
        for k, v in skipdict.items():
            if k in item.keywords:
                item.add_marker(v)


@pytest.fixture
def rng() -> random.Random:
    return numtheory.make_rng(TEST_SEED)


@pytest.fixture(scope="session")
def keypair() -> tuple[rsa.RSAPubKey, rsa.RSAPrivKey]:
    """A 512-bit key pair shared by the whole session. Keys are immutable, so sharing is safe."""
    return rsa.RSAPrivKey.generate(512, 20, "tester", numtheory.make_rng(TEST_SEED))
