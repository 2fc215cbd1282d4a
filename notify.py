import os

import requests
from loguru import logger


def alert(msg: str) -> None:
    url = os.getenv("ALERT_WEBHOOK_URL", "").strip()
    if not url:
        logger.warning(f"[ALERT] {msg}")
        return
    try:
        requests.post(url, json={"content": msg}, timeout=5)
    except requests.RequestException as e:
        logger.error(f"[ALERT_FAIL] {e} (message: {msg})")
