"""Ordered intent rules for chat messages.

``classify`` walks ``RULES`` top to bottom and returns the first match as a
tagged :class:`Intent`. Order is the whole contract: a message that would
satisfy several rules is always claimed by the earliest one. Anything
unclaimed becomes ``IntentKind.EXTERNAL`` and goes to the external
assistant.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Mapping

from carechat.models.patient import DEPARTMENTS
from carechat.services.knowledge import disease_mentioned_in


class IntentKind(str, Enum):
    PII = "pii"
    DISEASE_INFO = "disease_info"
    PATIENT_COUNT = "patient_count"
    FULL_DETAILS = "full_details"
    NAME_ACTION = "name_action"
    DEPARTMENT_LIST = "department_list"
    SELECTED_FIELD = "selected_field"
    TEACH = "teach"
    NAME_AGE = "name_age"
    PATIENT_SEARCH = "patient_search"
    SELECTED_ALL_INFO = "selected_all_info"
    SELECTED_CONDITION = "selected_condition"
    SELECTED_SURGERIES = "selected_surgeries"
    SELECTED_VITALS = "selected_vitals"
    SELECTED_MEDICATIONS = "selected_medications"
    SELECTED_MILESTONES = "selected_milestones"
    EXTERNAL = "external"


@dataclass(frozen=True)
class MessageContext:
    text: str
    selected_patient_id: str | None = None
    user_id: str | None = None

    @property
    def lowered(self) -> str:
        return self.text.lower().strip()

    @property
    def authenticated(self) -> bool:
        return self.user_id is not None


@dataclass(frozen=True)
class Intent:
    kind: IntentKind
    params: Mapping[str, Any] = field(default_factory=dict)


Matcher = Callable[[MessageContext], dict | None]


@dataclass(frozen=True)
class Rule:
    kind: IntentKind
    match: Matcher


# Words that show up around a name in chat phrasing but are never part of it.
FILLER_WORDS = frozenset({
    "a", "about", "all", "an", "and", "any", "are", "can", "check", "current", "detail",
    "details", "display", "does", "find", "for", "full", "get", "give", "has", "have", "her",
    "his", "how", "i", "info", "information", "is", "last", "latest", "list", "me", "my", "now",
    "of", "patient", "patients", "please", "recent", "record", "records", "s", "search", "see",
    "show", "tell", "the", "their", "this", "today", "view", "want", "was", "what", "whats",
    "with", "you",
})

# Topic words that can precede the action word ("show recovery progress").
ACTION_WORDS = frozenset({
    "age", "contact", "email", "meds", "medications", "op", "phone", "post", "post-op", "postop",
    "postoperative", "progress", "recovery", "signs", "surgeries", "surgery", "vital", "vitals",
})

EDGE_PUNCTUATION = ".,;:!?\"'()-"


def clean_name(candidate: str | None) -> str | None:
    """Strip filler words from a captured name; None if nothing name-like is left.

    Surviving tokens keep their inner hyphens and apostrophes ("anne-marie",
    "o'brien"). A candidate mentioning a department is rejected so that
    department listings are not mistaken for patient names.
    """
    if not candidate:
        return None
    kept = []
    for token in candidate.lower().split():
        bare = token.strip(EDGE_PUNCTUATION)
        if bare.endswith("'s"):
            bare = bare[:-2]
        if bare in DEPARTMENTS:
            return None
        if bare and bare not in FILLER_WORDS and bare not in ACTION_WORDS:
            kept.append(bare)
    return " ".join(kept) or None


# 1. PII
PII_PATTERN = re.compile(r"\b(address|phone|email|contact|contact details|contact info)\b")
PII_NAME_PATTERNS = (
    re.compile(r"(?:patient|find|show)\s+([a-z\s'-]+?)\s+(?:address|phone|email|contact)"),
    re.compile(r"^([a-z\s'-]+?)\s+(?:address|phone|email|contact)(?:\s+(?:details|info))?$"),
)


def _contact_fields(lowered: str) -> tuple[str, ...]:
    fields = []
    if "address" in lowered:
        fields.append("address")
    if re.search(r"phone|contact", lowered):
        fields.append("phone")
    if "email" in lowered:
        fields.append("email")
    return tuple(fields)


def match_pii(ctx: MessageContext) -> dict | None:
    m = ctx.lowered
    if not PII_PATTERN.search(m):
        return None
    name = None
    for pattern in PII_NAME_PATTERNS:
        found = pattern.search(m)
        if found:
            name = clean_name(found.group(1))
            if name:
                break
    return {"fields": _contact_fields(m), "name": name}


# 2. Disease table
def match_disease(ctx: MessageContext) -> dict | None:
    key = disease_mentioned_in(ctx.lowered)
    return {"key": key} if key else None


# 3. Aggregate count
COUNT_PATTERN = re.compile(
    r"^how many patients\??$|how many patients in total|number of patients|count of patients"
)


def match_count(ctx: MessageContext) -> dict | None:
    return {} if COUNT_PATTERN.search(ctx.lowered) else None


# 4. Full details by name
DETAILS_PATTERN = re.compile(
    r"(?:i want patient|show patient|show details of|details of|details)\s+([a-z '-]+)", re.IGNORECASE
)


def match_full_details(ctx: MessageContext) -> dict | None:
    found = DETAILS_PATTERN.search(ctx.text)
    if not found:
        return None
    name = clean_name(found.group(1))
    return {"name": name} if name else None


# 5. "<name> <action>"
NAME_ACTION_PATTERN = re.compile(
    r"^(?:patient\s+)?([a-z\s'-]+?)\s+(surgery|surgeries|post-?op|post op|postoperative|post operative|"
    r"recovery|progress|details|age|how old|meds|medications|vitals|vital signs|contact|phone|email|address)$",
    re.IGNORECASE,
)

ACTIONS = {
    "surgery": "surgery", "surgeries": "surgery",
    "post-op": "post_op", "postop": "post_op", "post op": "post_op",
    "postoperative": "post_op", "post operative": "post_op",
    "recovery": "recovery", "progress": "recovery",
    "details": "details",
    "age": "age", "how old": "age",
    "meds": "meds", "medications": "meds",
    "vitals": "vitals", "vital signs": "vitals",
    "contact": "contact", "phone": "contact", "email": "contact", "address": "contact",
}


def match_name_action(ctx: MessageContext) -> dict | None:
    found = NAME_ACTION_PATTERN.match(ctx.text.strip())
    if not found:
        return None
    name = clean_name(found.group(1))
    if not name:
        return None
    return {"name": name, "action": ACTIONS[found.group(2).lower()]}


# 6. Department listing
DEPARTMENT_PATTERN = re.compile(r"\b(cardiology|oncology|surgery)\b")
LISTING_HINT = re.compile(r"patient|patients|details|list")


def match_department(ctx: MessageContext) -> dict | None:
    m = ctx.lowered
    found = DEPARTMENT_PATTERN.search(m)
    if found and LISTING_HINT.search(m):
        return {"department": found.group(1)}
    return None


# 7. Single field of the selected patient
SELECTED_FIELD_PATTERN = re.compile(r"\b(age|how old|blood group|blood type|contact|phone|email|address)\b")


def match_selected_field(ctx: MessageContext) -> dict | None:
    if not ctx.selected_patient_id:
        return None
    m = ctx.lowered
    if not SELECTED_FIELD_PATTERN.search(m):
        return None
    if re.search(r"age|how old", m):
        selected = "age"
    elif re.search(r"blood group|blood type", m):
        selected = "blood_type"
    elif re.search(r"phone|contact", m):
        selected = "phone"
    elif "email" in m:
        selected = "email"
    else:
        selected = "address"
    return {"field": selected}


# 8. Teaching lookups
TEACH_PATTERN = re.compile(r"^(?:teach me about|educate me about|what is|explain)\s+(.+)", re.IGNORECASE)


def match_teach(ctx: MessageContext) -> dict | None:
    found = TEACH_PATTERN.match(ctx.text.strip())
    if not found:
        return None
    topic = found.group(1).lower().strip().rstrip("?.! ")
    return {"topic": topic} if topic else None


# 9. "<name> age"
NAME_AGE_PATTERN = re.compile(
    r"^(?:patient\s+)?([a-z\s'-]+?)\s+(?:age|how old|what is the age|what's the age)$", re.IGNORECASE
)


def match_name_age(ctx: MessageContext) -> dict | None:
    found = NAME_AGE_PATTERN.match(ctx.text.strip())
    if not found:
        return None
    name = clean_name(found.group(1))
    return {"name": name} if name else None


# 10. Generic search
SEARCH_PATTERN = re.compile(r"^(?:(?:find|search|search for|show|look up)\s+)?patient\s+(.+)")


def match_search(ctx: MessageContext) -> dict | None:
    found = SEARCH_PATTERN.match(ctx.lowered)
    if not found:
        return None
    name = clean_name(found.group(1))
    return {"name": name} if name else None


# 11. Selected-patient lookups
ALL_INFO_PATTERN = re.compile(
    r"i want patient details|show all patient info|show all details|show patient info|"
    r"show patient details|all info of patient|all details of patient"
)
CONDITION_PATTERN = re.compile(
    r"what (?:condition|disease|diagnosis)|tell me about (?:the condition|the disease|their diagnosis)|"
    r"explain their (?:condition|disease|diagnosis)"
)
SURGERY_PATTERN = re.compile(r"\b(?:surgery|surgeries|bypass|operation|procedure)\b|(?<!post-)(?<!post )\bops?\b")
VITALS_PATTERN = re.compile(
    r"vital|blood pressure|heart rate|temperature|oxygen|spo2|pain|mobility|wound|post-?op|post op"
)
MEDICATION_PATTERN = re.compile(r"medicat|meds|drugs|prescription")
MILESTONE_PATTERN = re.compile(r"milestone|progress|recovered|recovery")


def _selected(pattern: re.Pattern) -> Matcher:
    def match(ctx: MessageContext) -> dict | None:
        if ctx.selected_patient_id and pattern.search(ctx.lowered):
            return {}
        return None
    return match


def match_selected_surgeries(ctx: MessageContext) -> dict | None:
    if not ctx.selected_patient_id:
        return None
    m = ctx.lowered
    if not SURGERY_PATTERN.search(m):
        return None
    return {
        "include_process": any(w in m for w in ("process", "how", "detail")),
        "include_learning": any(w in m for w in ("learn", "teach", "intern")),
    }


RULES: tuple[Rule, ...] = (
    Rule(IntentKind.PII, match_pii),
    Rule(IntentKind.DISEASE_INFO, match_disease),
    Rule(IntentKind.PATIENT_COUNT, match_count),
    Rule(IntentKind.FULL_DETAILS, match_full_details),
    Rule(IntentKind.NAME_ACTION, match_name_action),
    Rule(IntentKind.DEPARTMENT_LIST, match_department),
    Rule(IntentKind.SELECTED_FIELD, match_selected_field),
    Rule(IntentKind.TEACH, match_teach),
    Rule(IntentKind.NAME_AGE, match_name_age),
    Rule(IntentKind.PATIENT_SEARCH, match_search),
    Rule(IntentKind.SELECTED_ALL_INFO, _selected(ALL_INFO_PATTERN)),
    Rule(IntentKind.SELECTED_CONDITION, _selected(CONDITION_PATTERN)),
    Rule(IntentKind.SELECTED_SURGERIES, match_selected_surgeries),
    Rule(IntentKind.SELECTED_VITALS, _selected(VITALS_PATTERN)),
    Rule(IntentKind.SELECTED_MEDICATIONS, _selected(MEDICATION_PATTERN)),
    Rule(IntentKind.SELECTED_MILESTONES, _selected(MILESTONE_PATTERN)),
)


def classify(ctx: MessageContext, rules: tuple[Rule, ...] = RULES) -> Intent:
    for rule in rules:
        params = rule.match(ctx)
        if params is not None:
            return Intent(rule.kind, params)
    return Intent(IntentKind.EXTERNAL)
