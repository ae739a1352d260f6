"""
AI analysis service – explains OCR'd packaging text in plain Indonesian.
Uses the OpenAI SDK; AI_BASE_URL may point it at any compatible endpoint.
The answer is always structured into the same six sections.
"""

import logging
from openai import OpenAI, OpenAIError

from pharmalens.config import Config
from pharmalens.errors import ExternalServiceError

logger = logging.getLogger("pharmalens.analysis")

ANALYSIS_FAILURE_MESSAGE = "Failed to analyze text with AI"

_client = None


def _get_client() -> OpenAI:
    global _client
    if _client is None:
        kwargs = {"api_key": Config.OPENAI_API_KEY, "timeout": Config.AI_TIMEOUT_SECONDS}
        if Config.AI_BASE_URL:
            kwargs["base_url"] = Config.AI_BASE_URL
        _client = OpenAI(**kwargs)
    return _client


ANALYSIS_SECTIONS = (
    ("Nama Obat dan Kandungan Aktif", "Identifikasi nama obat dan zat aktif utama"),
    ("Dosis dan Cara Penggunaan", "Petunjuk dosis dan cara pemberian obat"),
    ("Manfaat", "Manfaat dari obat ini"),
    ("Kontraindikasi dan Peringatan", "Kondisi yang tidak boleh menggunakan obat ini"),
    ("Efek Samping", "Kemungkinan efek samping yang dapat terjadi"),
    ("Cara Penyimpanan", "Petunjuk penyimpanan yang benar"),
)

PROMPT_TEMPLATE = """Analisis teks berikut yang diekstrak dari gambar kemasan obat/produk farmasi. Berikan informasi lengkap dan selalu gunakan dalam bahasa Indonesia tentang:

{sections}

Teks OCR: "{ocr_text}"

PENTING:
- Jawab HANYA dalam bahasa Indonesia
- Gunakan format yang jelas dengan poin-poin
- Jika teks tidak jelas atau bukan dari kemasan obat, berikan penjelasan dan saran umum
- Berikan peringatan untuk selalu konsultasi dengan dokter atau apoteker
- Gunakan istilah medis yang mudah dipahami masyarakat Indonesia
"""


def build_prompt(ocr_text: str) -> str:
    sections = "\n".join(
        f"{i}. {title}: {hint} (selalu gunakan bahasa indonesia)"
        for i, (title, hint) in enumerate(ANALYSIS_SECTIONS, start=1)
    )
    return PROMPT_TEMPLATE.format(sections=sections, ocr_text=ocr_text)


def analyze_text(ocr_text: str) -> str:
    """Ask the language model for the six-section explanation of `ocr_text`."""
    try:
        client = _get_client()
        completion = client.chat.completions.create(
            model=Config.AI_MODEL_NAME,
            messages=[{"role": "user", "content": build_prompt(ocr_text)}],
            max_tokens=Config.AI_MAX_TOKENS,
            temperature=Config.AI_TEMPERATURE,
        )
        content = completion.choices[0].message.content if completion.choices else None
    except OpenAIError as exc:
        logger.error("AI analysis call failed: %s", exc)
        raise ExternalServiceError(ANALYSIS_FAILURE_MESSAGE, stage="analysis") from exc

    analysis = (content or "").strip()
    if not analysis:
        logger.error("AI analysis returned an empty completion")
        raise ExternalServiceError(ANALYSIS_FAILURE_MESSAGE, stage="analysis")
    return analysis
