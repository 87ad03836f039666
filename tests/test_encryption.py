"""
Tests for at-rest encryption of trigger props.
"""

from cryptography.fernet import Fernet

from config.settings import config
from pieces import encryption


class TestPropsEncryption:
    def test_plaintext_when_no_key(self, monkeypatch):
        monkeypatch.setattr(config, "token_encryption_key", "")
        stored = encryption.encrypt_props({"authentication": "patXYZ"})
        assert not encryption.is_encryption_enabled()
        assert "patXYZ" in stored
        assert encryption.decrypt_props(stored) == {"authentication": "patXYZ"}

    def test_ciphertext_hides_tokens(self, monkeypatch):
        monkeypatch.setattr(config, "token_encryption_key", Fernet.generate_key().decode())
        stored = encryption.encrypt_props({"authentication": {"access_token": "tok-abc"}})
        assert encryption.is_encryption_enabled()
        assert "tok-abc" not in stored
        assert encryption.decrypt_props(stored) == {"authentication": {"access_token": "tok-abc"}}

    def test_rows_written_before_key_was_set_still_read(self, monkeypatch):
        monkeypatch.setattr(config, "token_encryption_key", "")
        legacy = encryption.encrypt_props({"base": "app1"})

        encryption.reset()
        monkeypatch.setattr(config, "token_encryption_key", Fernet.generate_key().decode())
        assert encryption.decrypt_props(legacy) == {"base": "app1"}
