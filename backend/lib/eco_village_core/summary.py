# backend/lib/eco_village_core/summary.py
"""
Condenses usage into a per-resident digest and asks a text-generation
service to turn it into a short, friendly analysis.

Only the digest is sent, never the raw records, to keep prompts small.
"""
import json
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Iterable, List

from .errors import ServiceError
from .models import Resident, UsageRecord
from .processor import round_kwh

logger = logging.getLogger(__name__)

FALLBACK_MESSAGE = (
    "Sorry, I couldn't analyze the data right now. "
    "Please ensure the text generation service is configured and its credentials are valid."
)
EMPTY_RESPONSE_MESSAGE = "Unable to generate insights at this time."

PROMPT_TEMPLATE = """You are an energy efficiency expert for an eco-conscious community.
Here is the energy usage summary for the last month (in kWh):

Community Total: {community_total:.1f} kWh

Resident Breakdown:
{breakdown}

Please provide a concise analysis in 3 short paragraphs:
1. Identify the top 3 highest consumers and potential reasons (e.g., heating, old appliances) based on general knowledge of domestic energy.
2. Suggest 3 specific, actionable community-wide tips to reduce overall consumption.
3. Give a positive encouragement about their eco-efforts.

Keep the tone friendly, encouraging, but data-driven."""


@dataclass
class ResidentDigest:
    name: str
    total_kwh: float
    daily_avg: float

    def to_dict(self) -> dict:
        return {"name": self.name, "totalKwh": self.total_kwh, "dailyAvg": self.daily_avg}


@dataclass
class Digest:
    community_total: float
    residents: List[ResidentDigest] = field(default_factory=list)


def build_digest(records: Iterable[UsageRecord], residents: Iterable[Resident]) -> Digest:
    """
    Per resident: total kWh and the average over the days that resident has
    records for. A resident with no records gets 0 for both.
    """
    totals = defaultdict(float)
    counts = defaultdict(int)
    for rec in records:
        totals[rec.resident_id] += rec.kwh
        counts[rec.resident_id] += 1

    entries = []
    for resident in residents:
        total = totals.get(resident.id, 0.0)
        days = counts.get(resident.id, 0)
        avg = total / days if days else 0.0
        entries.append(ResidentDigest(
            name=resident.name,
            total_kwh=round_kwh(total),
            daily_avg=round_kwh(avg),
        ))

    community_total = round_kwh(sum(e.total_kwh for e in entries))
    return Digest(community_total=community_total, residents=entries)


def build_prompt(digest: Digest) -> str:
    breakdown = json.dumps([e.to_dict() for e in digest.residents], indent=2)
    return PROMPT_TEMPLATE.format(community_total=digest.community_total, breakdown=breakdown)


def request_summary(digest: Digest, generator) -> str:
    """
    Ask `generator` (anything with a generate(prompt) -> str method) for an
    analysis of `digest`.

    Never raises: the insight panel is optional, so every failure turns into
    a message the dashboard can show in its place.
    """
    if generator is None:
        logger.warning("Text generation service not configured; returning fallback")
        return FALLBACK_MESSAGE

    prompt = build_prompt(digest)
    try:
        text = generator.generate(prompt)
    except ServiceError as e:
        logger.error("Text generation failed: %s", e)
        return FALLBACK_MESSAGE
    except Exception:
        logger.exception("Unexpected error from text generation service")
        return FALLBACK_MESSAGE

    if not isinstance(text, str) or not text.strip():
        return EMPTY_RESPONSE_MESSAGE
    return text
