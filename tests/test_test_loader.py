"""
Tests for test_loader and crypto modules.

Tests loading of test definitions including:
- Plain JSON files and bundles with a session config
- Key-file and password encryption
- Wrong keys, corrupted files and malformed definitions
"""

import pytest
import json
from pathlib import Path

# Add parent directory to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from cryptography.fernet import InvalidToken

from proctor.crypto import decrypt_payload, encrypt_payload, generate_key, is_password_based
from proctor.errors import ConfigError, TestDefinitionError
from proctor.test_loader import load_test, parse_test_document


def write_json(path: Path, document) -> Path:
    path.write_text(json.dumps(document), encoding="utf-8")
    return path


class TestCrypto:
    """Test the payload encryption helpers."""

    def test_key_round_trip(self):
        key = generate_key()
        token = encrypt_payload(b"payload", key=key)

        assert not is_password_based(token)
        assert decrypt_payload(token, key) == b"payload"
        assert decrypt_payload(token, key.decode("utf-8")) == b"payload"

    def test_password_round_trip(self):
        data = encrypt_payload(b"payload", password="correct horse")

        assert is_password_based(data)
        assert decrypt_payload(data, "correct horse") == b"payload"

    def test_wrong_password(self):
        data = encrypt_payload(b"payload", password="correct horse")

        with pytest.raises(InvalidToken):
            decrypt_payload(data, "battery staple")

    def test_malformed_key(self):
        token = encrypt_payload(b"payload", key=generate_key())

        with pytest.raises(InvalidToken):
            decrypt_payload(token, "short")

    def test_exactly_one_secret(self):
        with pytest.raises(ValueError):
            encrypt_payload(b"x")
        with pytest.raises(ValueError):
            encrypt_payload(b"x", key=generate_key(), password="both")


class TestLoadPlainTest:
    """Test loading .json test files."""

    def test_bare_definition(self, tmp_path, make_test_dict):
        path = write_json(tmp_path / "test.json", make_test_dict(section_sizes=(2, 1)))

        test, config = load_test(path)

        assert test.id == "T1"
        assert len(test.all_questions()) == 3
        assert config is None

    def test_bundle_with_config(self, tmp_path, make_test_dict):
        bundle = {"config": {"violation_limit": 5}, "test": make_test_dict()}
        path = write_json(tmp_path / "bundle.json", bundle)

        test, config = load_test(path)

        assert test.id == "T1"
        assert config.violation_limit == 5

    def test_bundle_with_invalid_config(self, make_test_dict):
        with pytest.raises(ConfigError):
            parse_test_document({"config": {"violation_limit": 0}, "test": make_test_dict()})

    def test_missing_file(self, tmp_path):
        with pytest.raises(TestDefinitionError, match="not found"):
            load_test(tmp_path / "absent.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "test.json"
        path.write_text("{", encoding="utf-8")

        with pytest.raises(TestDefinitionError, match="Invalid JSON"):
            load_test(path)

    def test_not_an_object(self, tmp_path):
        path = write_json(tmp_path / "test.json", [1, 2, 3])

        with pytest.raises(TestDefinitionError, match="JSON object"):
            load_test(path)

    def test_malformed_definition(self, tmp_path, make_test_dict):
        data = make_test_dict()
        data["sections"][0]["questions"] = "not a list"
        path = write_json(tmp_path / "test.json", data)

        with pytest.raises(TestDefinitionError):
            load_test(path)


class TestLoadEncryptedTest:
    """Test loading encrypted test files."""

    def test_key_encrypted(self, tmp_path, make_test_dict):
        key = generate_key()
        path = tmp_path / "test.enc"
        path.write_bytes(encrypt_payload(json.dumps(make_test_dict()).encode("utf-8"), key=key))

        test, _ = load_test(path, key.decode("utf-8"))

        assert test.name == "Sample Test"

    def test_password_encrypted_bundle(self, tmp_path, make_test_dict):
        bundle = {"config": {"autosave": True}, "test": make_test_dict(coding=1)}
        path = tmp_path / "test.enc"
        path.write_bytes(encrypt_payload(json.dumps(bundle).encode("utf-8"), password="s3cret-pass"))

        test, config = load_test(path, "s3cret-pass")

        assert test.has_coding()
        assert config.autosave is True

    def test_key_required(self, tmp_path):
        path = tmp_path / "test.enc"
        path.write_bytes(b"whatever")

        with pytest.raises(TestDefinitionError, match="key or password is required"):
            load_test(path)

    def test_wrong_key(self, tmp_path, make_test_dict):
        path = tmp_path / "test.enc"
        path.write_bytes(encrypt_payload(json.dumps(make_test_dict()).encode("utf-8"), key=generate_key()))

        with pytest.raises(TestDefinitionError, match="Decryption failed"):
            load_test(path, generate_key())
