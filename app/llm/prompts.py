"""Prompt text for review replies."""
from typing import Optional

BASE_PROMPT = """You are a professional customer service representative responding to customer reviews.
Your responses should be helpful, empathetic, and maintain a positive brand image.
Keep responses concise (2-3 sentences) and always thank the customer for their feedback."""

DEFAULT_LANGUAGE = "en"
DEFAULT_TONE = "professional"

LANGUAGES = {
    "en": "Respond in English.",
    "ro": "Respond in Romanian (Română).",
    "es": "Respond in Spanish (Español).",
    "fr": "Respond in French (Français).",
    "de": "Respond in German (Deutsch).",
    "it": "Respond in Italian (Italiano).",
}

TONES = {
    "professional": "Maintain a formal, business-like tone while being warm and appreciative.",
    "friendly": "Use a warm, conversational tone that feels personal and genuine.",
    "apologetic": "Express sincere apology and commitment to improvement. Acknowledge any issues mentioned.",
    "grateful": "Express deep appreciation and highlight how much the customer's feedback means.",
}


def build_system_prompt(language: Optional[str] = None, tone: Optional[str] = None) -> str:
    """Preamble plus language and tone directives. Unknown values use the defaults."""
    language_directive = LANGUAGES.get(language or DEFAULT_LANGUAGE, LANGUAGES[DEFAULT_LANGUAGE])
    tone_directive = TONES.get(tone or DEFAULT_TONE, TONES[DEFAULT_TONE])
    return f"{BASE_PROMPT}\n\n{language_directive}\n{tone_directive}"


def build_user_prompt(review_text: str) -> str:
    return f'Please write a professional response to this customer review:\n\n"{review_text}"'
