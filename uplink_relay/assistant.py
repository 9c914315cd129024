# =========================================
#     Uplink — Generative Text Assistant
#     Aliases, room names, link scan (FAILSAFE)
# =========================================

import json
import random

from openai import OpenAI

from uplink_relay.config import OPENAI_MODEL, COLLABORATOR_TIMEOUT_SECONDS
from uplink_relay.errors import CollaboratorUnavailable, ExtractionFailure
from uplink_relay.logger import log_info, log_warning


SCAN_STATUSES = {"SAFE", "UNSAFE"}

ALIAS_PROMPT = (
    "Generate a cool, cryptic hacker username (max 15 chars, no spaces) and a short "
    "1-sentence sci-fi backstory. Return ONLY JSON: "
    '{ "username": "...", "backstory": "..." }'
)

ROOM_NAME_PROMPT = (
    "Generate a single cool, secure-sounding chat room name (max 20 chars, no spaces, "
    "use underscores). Examples: 'Shadow_Ops', 'Neon_Grid', 'Sector_4'. "
    "Return ONLY the name as a raw string."
)


def _scan_prompt(url: str) -> str:
    return (
        f'Analyze this URL: "{url}".\n'
        'Is it safe? Return ONLY JSON: { "status": "SAFE" or "UNSAFE", "reason": "Short reason" }'
    )


# =========================================
#   JSON EXTRACTION
# =========================================
def _balanced_span(text: str):
    """First balanced {...} span of `text`, ignoring braces inside JSON strings."""
    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False

    for i in range(start, len(text)):
        ch = text[i]

        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start:i + 1]

    return None


def extract_json(text) -> dict:
    """
    Pull the first JSON object out of free-form model output
    (markdown fences, chatter before/after, etc.).
    """
    if not isinstance(text, str):
        raise ExtractionFailure("no text")

    span = _balanced_span(text)
    if span is None:
        raise ExtractionFailure("no JSON object found")

    try:
        data = json.loads(span)
    except ValueError as e:
        raise ExtractionFailure(f"invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ExtractionFailure("JSON value is not an object")

    return data


def clean_room_name(text: str) -> str:
    for ch in ('"', "`", "\n"):
        text = text.replace(ch, "")
    return text.strip()


# =========================================
#   ASSISTANT
# =========================================
class Assistant:
    """
    Black-box text generator behind a narrow interface.
    The server must NEVER crash or stall if the service is unavailable:
    every public method answers, with a local fallback when needed.
    """

    def __init__(self, client=None, model=OPENAI_MODEL, timeout=COLLABORATOR_TIMEOUT_SECONDS):
        self.model = model
        self.timeout = timeout
        self._client = client
        self._disabled = False

    def _get_client(self):
        """Lazy initialization; missing key disables the assistant for good."""
        if self._disabled:
            return None

        if self._client is not None:
            return self._client

        try:
            self._client = OpenAI(timeout=self.timeout, max_retries=0)
            log_info("assistant", "OpenAI client initialized.")
            return self._client
        except Exception:
            log_warning("assistant", "OpenAI client unavailable (OPENAI_API_KEY missing?) — using fallbacks.")
            self._disabled = True
            return None

    @property
    def available(self) -> bool:
        return self._get_client() is not None

    # -----------------------------------------
    #   RAW CALLS
    # -----------------------------------------
    def complete(self, prompt: str) -> str:
        client = self._get_client()
        if client is None:
            raise CollaboratorUnavailable("assistant disabled")

        try:
            resp = client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                timeout=self.timeout,
            )
            text = (resp.choices[0].message.content or "").strip()
        except Exception as e:
            raise CollaboratorUnavailable(str(e)) from e

        if not text:
            raise CollaboratorUnavailable("empty reply")
        return text

    def request_structured_completion(self, prompt: str) -> dict:
        return extract_json(self.complete(prompt))

    # -----------------------------------------
    #   FEATURES
    # -----------------------------------------
    def generate_alias(self) -> dict:
        if not self.available:
            return {"username": "Offline_User", "backstory": "AI module disconnected."}

        try:
            data = self.request_structured_completion(ALIAS_PROMPT)
            username = data.get("username")
            if not isinstance(username, str) or not username.strip():
                raise ExtractionFailure("alias without username")
            return {"username": username.strip(), "backstory": str(data.get("backstory") or "")}
        except CollaboratorUnavailable as e:
            log_warning("assistant", f"Alias generation failed: {e}")
            return {"username": f"Ghost_{random.randint(0, 99)}", "backstory": "Encrypted signal found."}

    def generate_room_name(self) -> dict:
        if not self.available:
            return {"name": f"Node_{random.randint(0, 999)}"}

        try:
            name = clean_room_name(self.complete(ROOM_NAME_PROMPT))
            if not name:
                raise ExtractionFailure("blank room name")
            return {"name": name}
        except CollaboratorUnavailable as e:
            log_warning("assistant", f"Room name generation failed: {e}")
            return {"name": f"Uplink_{random.randint(0, 998)}"}

    def scan_url(self, url) -> dict:
        if not isinstance(url, str) or not url.strip():
            return {"url": url, "status": "ERROR", "reason": "No URL supplied"}

        if not self.available:
            return {"url": url, "status": "UNKNOWN", "reason": "AI unavailable"}

        try:
            data = self.request_structured_completion(_scan_prompt(url))
        except CollaboratorUnavailable as e:
            log_warning("assistant", f"URL scan failed: {e}")
            return {"url": url, "status": "ERROR", "reason": "AI Analysis Failed"}

        status = str(data.get("status") or "").strip().upper()
        if status not in SCAN_STATUSES:
            status = "UNKNOWN"

        return {"url": url, "status": status, "reason": str(data.get("reason") or "")}
