"""
Intent classification for incoming chat messages
Keyword rules decide scope, chart requests, SQL analytics and ticket lookups
"""

import re
import logging
from dataclasses import replace
from typing import Callable, List, Tuple

from rancho_assistant.data_models import Classification, Intent

logger = logging.getLogger(__name__)

# Substring match on purpose: "services", "parking" and "electricity" count as in-domain
DOMAIN_PATTERN = re.compile(
    r"(rancho|cordova|smud|city|utilit|power|electric|energy|kwh|usage|meter|rebate|solar|billing|"
    r"department|service|permit|park|recreation|streetlight|outage|ticket|complaint|trash|water|pothole)",
    re.IGNORECASE,
)

PRIVACY_PATTERN = re.compile(
    r"\b(personal billing|billing details|payment history|full details|address|phone number|ssn|social security)\b",
    re.IGNORECASE,
)

CHART_PATTERN = re.compile(
    r"\b(chart|graph|plot|compare|comparison|trends?|distribution|pie|bar|visuali[sz]e)\b",
    re.IGNORECASE,
)

ANALYTICS_PATTERN = re.compile(
    r"\b(count|how many|number of|average|avg|mean|median|total|sum|usage|consumption|statistics|stats|"
    r"highest|lowest|maximum|minimum|per month|breakdown)\b",
    re.IGNORECASE,
)

# Wins over ANALYTICS_PATTERN: "how do I reduce my usage" is a knowledge question
VECTOR_OVERRIDE_PATTERN = re.compile(
    r"\b(how (?:do|can|to|should)|policy|policies|procedure|apply|application|permits?|eligib\w*|rebates?|"
    r"programs?|tips?|reduce|save|saving|contact|phone|email|hours|office|where)\b",
    re.IGNORECASE,
)

TICKET_ID_PATTERN = re.compile(r"\b(?:CL|RC)\d+\b", re.IGNORECASE)

NUMERIC_PATTERN = re.compile(r"\b(kwh|usage|average|total|month|year|rate|consumption)\b", re.IGNORECASE)

DIRECTORY_PATTERN = re.compile(r"\b(phone|email|contact|department|office|address)\b", re.IGNORECASE)

# Evaluated top to bottom; the first predicate that holds decides the intent
INTENT_RULES: List[Tuple[Intent, Callable[[Classification], bool]]] = [
    (Intent.OUT_OF_SCOPE, lambda c: not c.in_domain),
    (Intent.LOOKUP, lambda c: c.wants_ticket_lookup),
    (Intent.ANALYTICS, lambda c: c.wants_analytics),
    (Intent.CHART, lambda c: c.wants_chart),
]


def find_ticket_ids(text: str) -> List[str]:
    seen: List[str] = []
    for token in TICKET_ID_PATTERN.findall(text or ""):
        upper = token.upper()
        if upper not in seen:
            seen.append(upper)
    return seen


def resolve_intent(classification: Classification) -> Intent:
    for intent, predicate in INTENT_RULES:
        if predicate(classification):
            return intent
    return Intent.KNOWLEDGE


def classify(message: str) -> Classification:
    """Classify one message. Stateless; no conversation history is consulted."""
    text = message or ""
    privacy_hit = bool(PRIVACY_PATTERN.search(text))
    domain_hit = bool(DOMAIN_PATTERN.search(text))
    ticket_ids = find_ticket_ids(text)
    flags = Classification(
        in_domain=domain_hit and not privacy_hit,
        wants_chart=bool(CHART_PATTERN.search(text)),
        wants_analytics=bool(ANALYTICS_PATTERN.search(text)) and not VECTOR_OVERRIDE_PATTERN.search(text),
        wants_ticket_lookup=bool(ticket_ids),
        wants_numeric=bool(NUMERIC_PATTERN.search(text)),
        wants_directory=bool(DIRECTORY_PATTERN.search(text)),
        ticket_ids=ticket_ids,
    )
    result = replace(flags, intent=resolve_intent(flags))
    if privacy_hit:
        logger.info("Privacy pattern matched; message rejected")
    logger.debug(f"classify: intent={result.intent.value} chart={result.wants_chart} analytics={result.wants_analytics}")
    return result
