from __future__ import annotations

import json
import logging
import urllib.error
import urllib.request
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)


class WebhookError(RuntimeError):
    pass


@dataclass(frozen=True)
class WebhookClient:
    url: str
    timeout_seconds: int = 10

    def post_json(self, payload: dict[str, Any]) -> int:
        body = json.dumps(payload, default=str).encode("utf-8")
        req = urllib.request.Request(self.url, data=body, method="POST")
        req.add_header("Content-Type", "application/json")
        try:
            with urllib.request.urlopen(req, timeout=self.timeout_seconds) as resp:
                return resp.status
        except urllib.error.HTTPError as e:
            try:
                detail = e.read().decode("utf-8", errors="ignore")
            except Exception:
                detail = ""
            raise WebhookError(f"HTTP {e.code} from webhook: {detail[:300]}") from e
        except (urllib.error.URLError, TimeoutError, OSError) as e:
            raise WebhookError(f"Webhook request failed: {e}") from e


def forward_submission(url: str | None, payload: dict[str, Any]) -> str:
    """
    POST the submission to the configured webhook.
    Returns the status stored on the row: skipped, sent or failed.
    The submission is already saved, so failures are logged and not raised.
    """
    if not url:
        logger.info("CONTACT_WEBHOOK_URL not set; skipping webhook (submission=%s)", payload.get("submissionId"))
        return "skipped"
    try:
        WebhookClient(url).post_json(payload)
    except WebhookError as e:
        logger.error("Contact webhook failed (submission=%s): %s", payload.get("submissionId"), e)
        return "failed"
    logger.info("Contact webhook sent (submission=%s)", payload.get("submissionId"))
    return "sent"
