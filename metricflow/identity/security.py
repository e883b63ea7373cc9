"""Security helpers for hashing passwords."""

from __future__ import annotations

from passlib.context import CryptContext

DEFAULT_BCRYPT_ROUNDS = 12


def build_password_context(rounds: int = DEFAULT_BCRYPT_ROUNDS) -> CryptContext:
    return CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)


_pwd_context = build_password_context()


def hash_password(plain_password: str, context: CryptContext | None = None) -> str:
    return (context or _pwd_context).hash(plain_password)


def verify_password(plain_password: str, password_hash: str, context: CryptContext | None = None) -> bool:
    return (context or _pwd_context).verify(plain_password, password_hash)
