import base64
import os

import pytest

from elitetime.core.env_crypto import (
    NONCE_SIZE,
    EnvCryptoError,
    decrypt_bytes,
    decrypt_env_file,
    encrypt_bytes,
    encrypt_env_file,
    load_encrypted_env,
    main,
)

ENV_CONTENT = "DATABASE_URL=postgresql+asyncpg://elite:pw@db/elitetime\nLDAP_PWD=s3cret\n"


class TestEnvCrypto:
    """AES-GCM encryption of the secrets file"""

    def test_encrypt_then_decrypt_returns_original(self):
        payload = encrypt_bytes(ENV_CONTENT.encode(), master_key="master")
        assert decrypt_bytes(payload, master_key="master").decode() == ENV_CONTENT

    def test_payload_layout(self):
        payload = encrypt_bytes(b"A=1", master_key="master")
        raw = base64.b64decode(payload)
        # nonce + ciphertext + 16 byte tag
        assert len(raw) == NONCE_SIZE + 3 + 16

    def test_nonce_is_random(self):
        assert encrypt_bytes(b"A=1", master_key="master") != encrypt_bytes(b"A=1", master_key="master")

    def test_wrong_key_fails(self):
        payload = encrypt_bytes(b"A=1", master_key="master")
        with pytest.raises(EnvCryptoError):
            decrypt_bytes(payload, master_key="other")

    def test_tampered_payload_fails(self):
        raw = bytearray(base64.b64decode(encrypt_bytes(b"A=1", master_key="master")))
        raw[-1] ^= 0x01
        with pytest.raises(EnvCryptoError):
            decrypt_bytes(base64.b64encode(bytes(raw)), master_key="master")

    def test_missing_master_key(self, monkeypatch):
        monkeypatch.delenv("MASTER_KEY", raising=False)
        with pytest.raises(EnvCryptoError):
            encrypt_bytes(b"A=1")

    def test_file_round_trip(self, tmp_path):
        plain = tmp_path / ".env"
        plain.write_text(ENV_CONTENT, encoding="utf-8")
        encrypted = encrypt_env_file(str(plain), str(tmp_path / ".env.enc"), master_key="master")

        assert ENV_CONTENT not in encrypted.read_text()
        assert decrypt_env_file(str(encrypted), master_key="master") == ENV_CONTENT

    def test_missing_file(self, tmp_path):
        with pytest.raises(EnvCryptoError):
            encrypt_env_file(str(tmp_path / "absent"), str(tmp_path / "out"), master_key="master")

    def test_load_keeps_existing_variables(self, tmp_path, monkeypatch):
        monkeypatch.setenv("MASTER_KEY", "master")
        monkeypatch.setenv("ELITE_EXISTING", "kept")
        monkeypatch.delenv("ELITE_NEW", raising=False)
        target = tmp_path / ".env.enc"
        target.write_bytes(encrypt_bytes(b"ELITE_EXISTING=replaced\nELITE_NEW=loaded\n"))

        assert load_encrypted_env(str(target)) is True
        assert os.environ["ELITE_EXISTING"] == "kept"
        assert os.environ.pop("ELITE_NEW") == "loaded"

    def test_load_without_file(self, tmp_path, monkeypatch):
        monkeypatch.setenv("MASTER_KEY", "master")
        assert load_encrypted_env(str(tmp_path / "absent.enc")) is False

    def test_cli_reports_wrong_key(self, tmp_path, monkeypatch, capsys):
        target = tmp_path / ".env.enc"
        target.write_bytes(encrypt_bytes(b"A=1", master_key="master"))
        monkeypatch.setenv("MASTER_KEY", "other")

        assert main(["decrypt", "--input", str(target)]) == 1
        assert "Error" in capsys.readouterr().err
