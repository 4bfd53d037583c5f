import uuid
from typing import Optional

from loguru import logger


async def extract_client_id(user_id: str | None) -> str:
    """
    Builds a short readable socket id like 'u-42-a3f2' or 'client-a3f2'.
    The suffix keeps two tabs of the same user apart.
    """
    return f"{user_id or 'client'}-{str(uuid.uuid4())[:4]}"


async def log_connection(protocol: str, client_id: str, extra: Optional[dict] = None) -> None:
    """
    Single structured log entry for a socket connecting or leaving.
    Writes: protocol, client_id, and any extra fields.
    """
    log_str = f"protocol={protocol} client_id={client_id}"
    for k, v in (extra or {}).items():
        log_str += f" {k}={v}"
    logger.info(log_str)
