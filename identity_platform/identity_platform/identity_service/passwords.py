from passlib.context import CryptContext


# Use pbkdf2_sha256 to avoid external bcrypt backend issues in some environments
def build_password_context(rounds: int) -> CryptContext:
    return CryptContext(
        schemes=["pbkdf2_sha256"],
        deprecated="auto",
        pbkdf2_sha256__rounds=rounds,
    )


class PasswordHasher:
    """Salted adaptive password hashing with a fixed work factor."""

    def __init__(self, rounds: int):
        self._context = build_password_context(rounds)

    def hash_password(self, password: str) -> str:
        return self._context.hash(password)

    def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        return self._context.verify(plain_password, hashed_password)

    def dummy_verify(self) -> bool:
        """Spend the same time as a real verification when there is no hash to check."""
        return self._context.dummy_verify()
