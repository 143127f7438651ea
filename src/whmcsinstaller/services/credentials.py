"""Random secret generation."""

import secrets
import string


class CredentialGenerator:
    ALPHABET = string.ascii_letters + string.digits

    def __init__(self, alphabet: str = ALPHABET):
        self.alphabet = alphabet

    def generate(self, length: int) -> str:
        if length <= 0:
            raise ValueError("Secret length must be positive.")
        return "".join(secrets.choice(self.alphabet) for _ in range(length))
