import bcrypt

BCRYPT_ROUNDS = 10
BCRYPT_MAX_BYTES = 72

def _encode(password: str) -> bytes:
    # bcrypt only reads the first 72 bytes; newer releases reject longer input
    return password.encode()[:BCRYPT_MAX_BYTES]

def hash_password(password: str) -> str:
    return bcrypt.hashpw(_encode(password), bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode()

def verify_password(password: str, hash_: str) -> bool:
    if not password or not hash_:
        return False
    try:
        return bcrypt.checkpw(_encode(password), hash_.encode())
    except ValueError:
        # malformed hash in storage
        return False
