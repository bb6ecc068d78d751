import secrets

from errors import RandomnessError

ID_LENGTH = 15
ID_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"


def new_id() -> str:
    """Random token for MsgId / PmtInfId, drawn from the OS CSPRNG."""
    try:
        return "".join(secrets.choice(ID_ALPHABET) for _ in range(ID_LENGTH))
    except (OSError, NotImplementedError) as exc:
        raise RandomnessError(f"secure random source unavailable: {exc}") from exc
