import json
import logging
import secrets
import uuid
from pathlib import Path
from typing import Dict

logger = logging.getLogger(__name__)


def load_device_identity(path: Path) -> Dict[str, str]:
    """Чтение идентичности локального устройства, при первом запуске - создание"""
    try:
        if path.exists():
            identity = json.loads(path.read_text(encoding="utf-8"))
            if identity.get("id"):
                return {"id": str(identity["id"]), "name": str(identity.get("name") or "unknown")}
    except (OSError, ValueError) as e:
        logger.warning(f"Unreadable device identity at {path}: {e}")

    identity = {"id": str(uuid.uuid4()), "name": f"device-{secrets.token_hex(2)}"}
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(identity, indent=2), encoding="utf-8")
    except OSError as e:
        # Идентичность все равно нужна процессу, даже если не удалось сохранить
        logger.warning(f"Could not persist device identity to {path}: {e}")
    return identity
