# pylint: disable=missing-module-docstring,redefined-outer-name
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0
import io
import logging
import sys

import pytest

import rsablocks
from rsablocks import __main__ as cli
from rsablocks import codec

payload = b"Attack at dawn!\x00\x01\xff" * 20


@pytest.fixture
def keyfiles(tmp_path):
    pub, priv = tmp_path / "rsa.pub", tmp_path / "rsa.priv"
    assert cli.main(["keygen", "-b", "128", "-i", "20", "-s", "4", "-u", "alice", "-n", str(pub), "-d", str(priv)]) == 0
    return pub, priv


def test_keygen(keyfiles):
    pub_file, priv_file = keyfiles
    pub = rsablocks.RSAPubKey.import_key(pub_file)
    priv = rsablocks.RSAPrivKey.import_key(priv_file)
    assert pub.identity == "alice"
    assert pub.verify_identity()
    assert pub.mod == priv.mod
    assert 127 <= pub.mod.bit_length() <= 128


def test_keygen_seeded(tmp_path):
    runs = []
    for run in ("a", "b"):
        pub, priv = tmp_path / f"{run}.pub", tmp_path / f"{run}.priv"
        assert cli.main(["keygen", "-b", "64", "-s", "1337", "-u", "x", "-n", str(pub), "-d", str(priv)]) == 0
        runs.append((pub.read_text(), priv.read_text()))
    assert runs[0] == runs[1]


def test_keygen_default_identity(monkeypatch, tmp_path):
    for var in ("LOGNAME", "USER", "LNAME", "USERNAME"):
        monkeypatch.setenv(var, "bob")
    pub = tmp_path / "rsa.pub"
    assert cli.main(["keygen", "-b", "64", "-n", str(pub), "-d", str(tmp_path / "rsa.priv")]) == 0
    assert rsablocks.RSAPubKey.import_key(pub).identity == "bob"


def test_keygen_defaults(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    args = cli.corep.parse_args(["keygen"])
    assert args.bits == 1024
    assert args.iters == 50
    assert str(args.public_key) == "rsa.pub"
    assert str(args.private_key) == "rsa.priv"
    assert args.seed is None


def test_keygen_pem(tmp_path):
    pem = tmp_path / "rsa.pem"
    pub = tmp_path / "rsa.pub"
    assert cli.main(["keygen", "-b", "64", "-s", "2", "-n", str(pub), "-d", str(tmp_path / "rsa.priv"), "--pem",
                     str(pem)]) == 0
    key = rsablocks.RSAPubKey.import_key(pub)
    res = rsablocks.RSAPubKey.import_pem(pem)
    assert (res.mod, res.expo) == (key.mod, key.expo)


def test_keygen_cleans_up_on_failure(tmp_path):
    priv = tmp_path / "rsa.priv"
    assert cli.main(["keygen", "-b", "64", "-n", str(tmp_path / "missing" / "rsa.pub"), "-d", str(priv)]) == 1
    assert not priv.exists()


@pytest.mark.parametrize("argv", [
    ["keygen", "-b", "49"],
    ["keygen", "-b", "4097"],
    ["keygen", "-b", "many"],
    ["keygen", "-i", "0"],
    ["keygen", "-i", "501"],
    ["encrypt", "--nope"],
    ["frobnicate"],
])
def test_invalid_options(argv, capsys):
    with pytest.raises(SystemExit) as exc:
        cli.main(argv)
    assert exc.value.code == 1
    assert "usage:" in capsys.readouterr().err


@pytest.mark.parametrize("argv", [["-h"], ["keygen", "-h"], ["encrypt", "--help"], ["decrypt", "-h"]])
def test_help(argv, capsys):
    with pytest.raises(SystemExit) as exc:
        cli.main(argv)
    assert exc.value.code == 0
    captured = capsys.readouterr()
    assert "usage:" in captured.err
    assert not captured.out


def test_no_subcommand(capsys):
    assert cli.main([]) == 1
    assert "usage:" in capsys.readouterr().err


def test_encrypt_decrypt_files(keyfiles, tmp_path):
    pub, priv = keyfiles
    plain, enc, dec = tmp_path / "plain", tmp_path / "enc", tmp_path / "dec"
    plain.write_bytes(payload)
    assert cli.main(["encrypt", "-i", str(plain), "-o", str(enc), "-n", str(pub)]) == 0
    assert cli.main(["decrypt", "-i", str(enc), "-o", str(dec), "-n", str(priv)]) == 0
    assert dec.read_bytes() == payload
    assert all(codec.parse_hex(line) < rsablocks.RSAPubKey.import_key(pub).mod for line in enc.read_text().splitlines())


def test_encrypt_decrypt_standard_streams(keyfiles, monkeypatch, tmp_path):
    pub, priv = keyfiles
    enc = tmp_path / "enc"
    monkeypatch.setattr(sys, "stdin", io.TextIOWrapper(io.BytesIO(payload)))
    assert cli.main(["encrypt", "-o", str(enc), "-n", str(pub)]) == 0
    monkeypatch.setattr(sys, "stdin", io.StringIO(enc.read_text()))
    out = io.TextIOWrapper(io.BytesIO())
    monkeypatch.setattr(sys, "stdout", out)
    assert cli.main(["decrypt", "-n", str(priv)]) == 0
    assert out.buffer.getvalue() == payload


def test_encrypt_unverified(keyfiles, tmp_path, capsys):
    pub, _ = keyfiles
    lines = pub.read_text().split("\n")
    lines[3] = "mallory"
    pub.write_text("\n".join(lines))
    plain, enc = tmp_path / "plain", tmp_path / "enc"
    plain.write_bytes(payload)
    assert cli.main(["encrypt", "-i", str(plain), "-o", str(enc), "-n", str(pub)]) == 1
    assert "could not verify signature" in capsys.readouterr().err
    assert not enc.exists()


@pytest.mark.parametrize("subcommand", ["encrypt", "decrypt"])
def test_missing_files(subcommand, tmp_path, capsys):
    assert cli.main([subcommand, "-i", str(tmp_path / "nothing"), "-n", str(tmp_path / "nokey")]) == 1
    assert capsys.readouterr().err


def test_missing_input(keyfiles, tmp_path, capsys):
    pub, _ = keyfiles
    assert cli.main(["encrypt", "-i", str(tmp_path / "nothing"), "-o", str(tmp_path / "enc"), "-n", str(pub)]) == 1
    assert "nothing" in capsys.readouterr().err


def test_decrypt_malformed(keyfiles, tmp_path, capsys):
    _, priv = keyfiles
    enc = tmp_path / "enc"
    enc.write_text("not hex at all\n")
    assert cli.main(["decrypt", "-i", str(enc), "-o", str(tmp_path / "dec"), "-n", str(priv)]) == 1
    assert "Line 1" in capsys.readouterr().err


def test_malformed_key(tmp_path, capsys):
    key = tmp_path / "rsa.priv"
    key.write_text("0xzz\n")
    assert cli.main(["decrypt", "-i", str(key), "-n", str(key)]) == 1
    assert "modulus" in capsys.readouterr().err


def test_verbose(keyfiles, tmp_path, caplog):
    pub, _ = keyfiles
    plain = tmp_path / "plain"
    plain.write_bytes(payload)
    with caplog.at_level(logging.DEBUG):
        assert cli.main(["encrypt", "-v", "-i", str(plain), "-o", str(tmp_path / "enc"), "-n", str(pub)]) == 0
    assert "username: alice" in caplog.text
    assert "e - public exponent" in caplog.text


def test_keygen_verbose(tmp_path, caplog):
    with caplog.at_level(logging.DEBUG):
        assert cli.main(["keygen", "-v", "-b", "64", "-u", "carol", "-n", str(tmp_path / "rsa.pub"), "-d",
                         str(tmp_path / "rsa.priv")]) == 0
    assert "d - private exponent" in caplog.text
    assert "username: carol" in caplog.text


def test_tool_entry_points(monkeypatch, tmp_path):
    pub, priv = tmp_path / "rsa.pub", tmp_path / "rsa.priv"
    monkeypatch.setattr(sys, "argv", ["rsa-keygen", "-b", "64", "-n", str(pub), "-d", str(priv)])
    assert cli.keygen_main() == 0
    plain, enc, dec = tmp_path / "plain", tmp_path / "enc", tmp_path / "dec"
    plain.write_bytes(payload)
    monkeypatch.setattr(sys, "argv", ["rsa-encrypt", "-i", str(plain), "-o", str(enc), "-n", str(pub)])
    assert cli.encrypt_main() == 0
    monkeypatch.setattr(sys, "argv", ["rsa-decrypt", "-i", str(enc), "-o", str(dec), "-n", str(priv)])
    assert cli.decrypt_main() == 0
    assert dec.read_bytes() == payload



def test_keygen_cleans_up_on_pem_failure(tmp_path):
    pub, priv = tmp_path / "rsa.pub", tmp_path / "rsa.priv"
    assert cli.main(["keygen", "-b", "64", "-n", str(pub), "-d", str(priv), "--pem",
                     str(tmp_path / "missing" / "rsa.pem")]) == 1
    assert not priv.exists()
    assert not pub.exists()


@pytest.mark.parametrize("subcommand,content", [
    ("encrypt", "0\n3\n0\nalice\n"),
    ("encrypt", "1\n3\n1\nalice\n"),
    ("decrypt", "0\n5\n"),
])
def test_zero_modulus_key(subcommand, content, tmp_path, capsys):
    key, plain, out = tmp_path / "key", tmp_path / "plain", tmp_path / "out"
    key.write_text(content)
    plain.write_bytes(payload)
    assert cli.main([subcommand, "-i", str(plain), "-o", str(out), "-n", str(key)]) == 1
    assert "malformed modulus" in capsys.readouterr().err
    assert not out.exists()


@pytest.mark.parametrize("subcommand,content", [
    ("encrypt", "ffff\n3\n1\nalice\n"),
    ("decrypt", "ffff\n3\n"),
])
def test_small_modulus_key(subcommand, content, tmp_path, capsys):
    key, plain, out = tmp_path / "key", tmp_path / "plain", tmp_path / "out"
    key.write_text(content)
    plain.write_bytes(payload)
    assert cli.main([subcommand, "-i", str(plain), "-o", str(out), "-n", str(key)]) == 1
    assert "too small" in capsys.readouterr().err
    assert not out.exists()
