import logging

import requests

from errors import RelayFailure

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are TrekSafeBot, a safety assistant for trekkers. "
    "Give clear, short, and helpful answers."
)


class ChatRelay:
    """Forwards a user message to an OpenAI-compatible chat completions API."""

    def __init__(self, api_key, api_url, model, timeout=30):
        self.api_key = api_key
        self.api_url = api_url
        self.model = model
        self.timeout = timeout

    @classmethod
    def from_config(cls, config):
        return cls(
            api_key=config.get('OPENAI_API_KEY'),
            api_url=config['OPENAI_API_URL'],
            model=config['OPENAI_MODEL'],
            timeout=config.get('CHAT_TIMEOUT', 30),
        )

    @property
    def configured(self):
        return bool(self.api_key)

    def send(self, message):
        if not self.configured:
            raise RelayFailure("Chatbot is not configured")

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": message},
            ],
        }

        try:
            response = requests.post(self.api_url, headers=headers, json=payload, timeout=self.timeout)
            response.raise_for_status()
            content = response.json()["choices"][0]["message"]["content"]
            if not isinstance(content, str):
                raise TypeError(f"completion content is {type(content).__name__}, not text")
            return content
        except (requests.RequestException, ValueError, KeyError, IndexError, TypeError) as e:
            logger.exception(f"Chatbot request to {self.api_url} failed: {e}")
            raise RelayFailure() from e
