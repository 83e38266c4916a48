import secrets
import string

# 26 lowercase + 26 uppercase + 10 digits
ALPHABET = string.ascii_letters + string.digits

def generate_code(length: int = 6) -> str:
    # secrets draws from the OS entropy pool, so no two processes share a sequence.
    # Uniqueness is left to the store's constraint on short_code.
    if length < 1:
        raise ValueError("code length must be positive")
    return "".join(secrets.choice(ALPHABET) for _ in range(length))
