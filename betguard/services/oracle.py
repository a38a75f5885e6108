"""
Client for the hosted chat-completion gateway.

The gateway is an untrusted text-in/text-out oracle. Callers get plain text
from ``complete`` or a validated pydantic object from ``complete_structured``;
every failure mode surfaces as ``OracleUnavailable``.
"""
import json
import logging
import re
from typing import Optional, Type, TypeVar

import requests
from pydantic import BaseModel, ValidationError

from betguard.core.config import settings
from betguard.core.errors import OracleUnavailable

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

RE_FENCED_JSON = re.compile(r"^```(?:json)?\s*\n(.*?)\n?```$", re.DOTALL)


def parse_structured(text: Optional[str], schema: Type[T]) -> T:
    """Validate oracle output: a bare JSON object or a single fenced block."""
    if not text:
        raise OracleUnavailable("Oracle returned no content")

    body = text.strip()
    m = RE_FENCED_JSON.match(body)
    if m:
        body = m.group(1).strip()

    try:
        data = json.loads(body)
    except ValueError:
        raise OracleUnavailable("Oracle returned malformed JSON")

    try:
        return schema.model_validate(data)
    except ValidationError as e:
        logger.warning("Oracle output failed %s validation: %s", schema.__name__, e.error_count())
        raise OracleUnavailable("Oracle output did not match the expected schema")


class OracleClient:
    def __init__(
        self,
        url: Optional[str] = None,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.url = url or settings.ORACLE_URL
        self.api_key = api_key if api_key is not None else settings.ORACLE_API_KEY
        self.model = model or settings.ORACLE_MODEL
        self.timeout = timeout or settings.ORACLE_TIMEOUT_SECONDS
        self.session = session or requests.Session()

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def complete(self, system: str, prompt: str) -> str:
        if not self.configured:
            raise OracleUnavailable("Oracle API key not configured")

        body = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        try:
            r = self.session.post(self.url, json=body, headers=headers, timeout=self.timeout)
            r.raise_for_status()
            data = r.json()
        except requests.Timeout:
            logger.warning("Oracle timed out after %ss", self.timeout)
            raise OracleUnavailable("Oracle timed out")
        except requests.RequestException as e:
            logger.warning("Oracle request failed: %s", e)
            raise OracleUnavailable("Oracle request failed")
        except ValueError:
            logger.warning("Oracle returned a non-JSON body")
            raise OracleUnavailable("Oracle returned a non-JSON body")

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            raise OracleUnavailable("Oracle response had no completion")
        if not isinstance(content, str) or not content.strip():
            raise OracleUnavailable("Oracle returned no content")
        return content

    def complete_structured(self, system: str, prompt: str, schema: Type[T]) -> T:
        return parse_structured(self.complete(system, prompt), schema)


def get_oracle() -> OracleClient:
    return OracleClient()
