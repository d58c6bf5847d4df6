"""Prompt templates for grounded legal answers."""
from typing import Sequence

CONTEXT_SEPARATOR = "\n\n---\n\n"

FALLBACK_ANSWER = (
    "Bu sorunun cevabı mevcut belgelerde bulunmamaktadır. "
    "Lütfen hukuk büromuzla doğrudan iletişime geçin."
)

DISCLAIMER = (
    "Not: Bu yanıt yalnızca genel bilgilendirme amaçlıdır ve hukuki tavsiye "
    "niteliği taşımaz."
)

PROMPT_TEMPLATE = """Sen bir hukuk bürosunun yardımcı asistanısın.
Aşağıdaki soruyu YALNIZCA "BAĞLAM" bölümünde verilen belge parçalarına dayanarak yanıtla.
Bağlam dışındaki bilgileri, tahminleri veya genel bilgini kullanma.
Cevap bağlamda yoksa yalnızca şu cümleyi yaz: "{fallback}"
Yanıtının sonuna her zaman şu notu ekle: "{disclaimer}"

BAĞLAM:
{context}

SORU:
{query}

YANIT:"""

SYSTEM_INSTRUCTION = (
    "Sen bir hukuk bürosunun yardımcı asistanısın. Kısa, açık ve nazik yanıtlar ver. "
    f'Her yanıtın sonuna şu notu ekle: "{DISCLAIMER}"'
)


def build_context(context_chunks: Sequence[str]) -> str:
    """Join retrieved chunk texts with the fixed separator."""
    return CONTEXT_SEPARATOR.join(chunk.strip() for chunk in context_chunks)


def build_prompt(context_chunks: Sequence[str], query: str) -> str:
    """Embed the retrieved context and the user query into the instruction template."""
    return PROMPT_TEMPLATE.format(
        fallback=FALLBACK_ANSWER,
        disclaimer=DISCLAIMER,
        context=build_context(context_chunks),
        query=query.strip(),
    )


def build_system_instruction() -> str:
    """System instruction used when answering from conversation history alone."""
    return SYSTEM_INSTRUCTION
