import secrets
from passlib.context import CryptContext
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# no 0/O or 1/I, codes get read aloud and typed by kids
FAMILY_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
FAMILY_CODE_LENGTH = 6

def hash_password(p: str) -> str:
    # Ensure bcrypt compatibility (72-byte limit)
    p = p.encode("utf-8")[:72].decode("utf-8", errors="ignore")
    return pwd_context.hash(p)


def verify_password(p: str, hashed: str) -> bool:
    p = p.encode("utf-8")[:72].decode("utf-8", errors="ignore")
    try:
        return pwd_context.verify(p, hashed)
    except ValueError:
        # unknown or corrupted hash format
        return False

def generate_session_token() -> str:
    return secrets.token_urlsafe(32)

def generate_family_code(n: int = FAMILY_CODE_LENGTH) -> str:
    return "".join(secrets.choice(FAMILY_CODE_ALPHABET) for _ in range(n))
