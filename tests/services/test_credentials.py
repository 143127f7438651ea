import pytest

from whmcsinstaller.services.credentials import CredentialGenerator


def test_generate_uses_alphanumeric_alphabet():
    secret = CredentialGenerator().generate(64)

    assert len(secret) == 64
    assert secret.isalnum()


def test_generate_rejects_non_positive_length():
    with pytest.raises(ValueError):
        CredentialGenerator().generate(0)
