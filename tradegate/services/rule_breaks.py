"""Rule-break codes and CSV tag helpers.

Trades store rule-breaks and tags as comma-separated strings, e.g.
"PLAN_MISSING,OVERRIDE_USED". Everything read back from storage goes through
parse_* so older spellings end up in the current code set.
"""

import enum
import re
from collections.abc import Iterable


class RuleBreakCode(str, enum.Enum):
    PLAN_MISSING = "PLAN_MISSING"
    CLOSEOUT_MISSING = "CLOSEOUT_MISSING"
    MAX_TRADES_HIT = "MAX_TRADES_HIT"
    MAX_DAILY_LOSS_HIT = "MAX_DAILY_LOSS_HIT"
    CONSEC_LOSSES_HIT = "CONSEC_LOSSES_HIT"
    OVERRIDE_USED = "OVERRIDE_USED"
    TRADE_BLOCKED_GATE = "TRADE_BLOCKED_GATE"
    INVALID_RISK_INPUT = "INVALID_RISK_INPUT"
    OTHER = "OTHER"


RULE_BREAK_LABELS: dict[RuleBreakCode, str] = {
    RuleBreakCode.PLAN_MISSING: "Daily plan missing",
    RuleBreakCode.CLOSEOUT_MISSING: "Daily closeout missing",
    RuleBreakCode.MAX_TRADES_HIT: "Max trades hit",
    RuleBreakCode.MAX_DAILY_LOSS_HIT: "Max daily loss hit",
    RuleBreakCode.CONSEC_LOSSES_HIT: "Consecutive losses hit",
    RuleBreakCode.OVERRIDE_USED: "Override used",
    RuleBreakCode.TRADE_BLOCKED_GATE: "Trade blocked by gate",
    RuleBreakCode.INVALID_RISK_INPUT: "Invalid risk input",
    RuleBreakCode.OTHER: "Other",
}

# Legacy / alternate spellings found in older rows
_LEGACY_CODES: dict[str, RuleBreakCode] = {
    "PLAN_MISS": RuleBreakCode.PLAN_MISSING,
    "PLAN_REQUIRED": RuleBreakCode.PLAN_MISSING,
    "CLOSEOUT_REQUIRED": RuleBreakCode.CLOSEOUT_MISSING,
    "DAILY_CLOSEOUT_MISSING": RuleBreakCode.CLOSEOUT_MISSING,
    "MAX_TRADES": RuleBreakCode.MAX_TRADES_HIT,
    "MAX_DAILY_LOSS": RuleBreakCode.MAX_DAILY_LOSS_HIT,
    "CONSECUTIVE_LOSSES": RuleBreakCode.CONSEC_LOSSES_HIT,
    "OVERRIDE": RuleBreakCode.OVERRIDE_USED,
    "OVERRIDE_ACTIVE": RuleBreakCode.OVERRIDE_USED,
}

_TAG_SEPARATORS = re.compile(r"[\s\-]+")


def normalize_rule_break(raw: str | None) -> RuleBreakCode:
    code = (raw or "").strip().upper()
    if not code:
        return RuleBreakCode.OTHER
    if code in RuleBreakCode.__members__:
        return RuleBreakCode(code)
    return _LEGACY_CODES.get(code, RuleBreakCode.OTHER)


def _split_csv(csv: str | None) -> list[str]:
    if not csv:
        return []
    return [part.strip() for part in csv.split(",") if part.strip()]


def _dedupe(items: Iterable) -> list:
    seen = set()
    out = []
    for item in items:
        if item not in seen:
            seen.add(item)
            out.append(item)
    return out


def parse_rule_breaks(csv: str | None) -> list[RuleBreakCode]:
    return _dedupe(normalize_rule_break(part) for part in _split_csv(csv))


def format_rule_breaks(codes: Iterable[RuleBreakCode | str]) -> str:
    return ",".join(c.value for c in _dedupe(normalize_rule_break(c) for c in codes))


def has_rule_break(csv: str | None, code: RuleBreakCode | str) -> bool:
    return normalize_rule_break(code) in parse_rule_breaks(csv)


def add_rule_break(csv: str | None, code: RuleBreakCode | str) -> str:
    return format_rule_breaks([*parse_rule_breaks(csv), normalize_rule_break(code)])


def remove_rule_break(csv: str | None, code: RuleBreakCode | str) -> str:
    target = normalize_rule_break(code)
    return format_rule_breaks(c for c in parse_rule_breaks(csv) if c != target)


def rule_break_label(code: RuleBreakCode | str) -> str:
    return RULE_BREAK_LABELS.get(normalize_rule_break(code), "Other")


def normalize_tag(raw: str | None) -> str:
    """Upper-case a tag and join words with underscores (late-entry -> LATE_ENTRY)."""
    return _TAG_SEPARATORS.sub("_", (raw or "").strip()).strip("_").upper()


def parse_tags(csv: str | None) -> list[str]:
    return _dedupe(t for t in (normalize_tag(p) for p in _split_csv(csv)) if t)


def format_tags(tags: Iterable[str]) -> str:
    return ",".join(_dedupe(t for t in (normalize_tag(x) for x in tags) if t))
