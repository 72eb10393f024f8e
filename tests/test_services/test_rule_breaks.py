from tradegate.services.rule_breaks import (
    RULE_BREAK_LABELS,
    RuleBreakCode,
    add_rule_break,
    format_rule_breaks,
    format_tags,
    has_rule_break,
    normalize_rule_break,
    normalize_tag,
    parse_rule_breaks,
    parse_tags,
    remove_rule_break,
    rule_break_label,
)


class TestRuleBreakCodes:
    def test_every_code_has_label(self):
        assert set(RULE_BREAK_LABELS) == set(RuleBreakCode)

    def test_normalize_known_and_legacy(self):
        assert normalize_rule_break("plan_missing") is RuleBreakCode.PLAN_MISSING
        assert normalize_rule_break(" PLAN_MISS ") is RuleBreakCode.PLAN_MISSING
        assert normalize_rule_break("override") is RuleBreakCode.OVERRIDE_USED
        assert normalize_rule_break("CONSECUTIVE_LOSSES") is RuleBreakCode.CONSEC_LOSSES_HIT

    def test_normalize_unknown_and_empty_is_other(self):
        assert normalize_rule_break("SOMETHING_NEW") is RuleBreakCode.OTHER
        assert normalize_rule_break("") is RuleBreakCode.OTHER
        assert normalize_rule_break(None) is RuleBreakCode.OTHER

    def test_parse_csv_dedupes_and_skips_blanks(self):
        codes = parse_rule_breaks("PLAN_MISSING, ,plan_miss,OVERRIDE_USED")
        assert codes == [RuleBreakCode.PLAN_MISSING, RuleBreakCode.OVERRIDE_USED]
        assert parse_rule_breaks(None) == []
        assert parse_rule_breaks("") == []

    def test_format_csv(self):
        csv = format_rule_breaks([RuleBreakCode.OVERRIDE_USED, "max_trades", "OVERRIDE_USED"])
        assert csv == "OVERRIDE_USED,MAX_TRADES_HIT"
        assert format_rule_breaks([]) == ""

    def test_add_remove_has(self):
        csv = add_rule_break("", RuleBreakCode.PLAN_MISSING)
        csv = add_rule_break(csv, "OVERRIDE_USED")
        csv = add_rule_break(csv, "PLAN_MISSING")
        assert csv == "PLAN_MISSING,OVERRIDE_USED"
        assert has_rule_break(csv, "override_used") is True

        csv = remove_rule_break(csv, RuleBreakCode.PLAN_MISSING)
        assert csv == "OVERRIDE_USED"
        assert has_rule_break(csv, RuleBreakCode.PLAN_MISSING) is False

    def test_labels(self):
        assert rule_break_label("INVALID_RISK_INPUT") == "Invalid risk input"
        assert rule_break_label("garbage") == "Other"


class TestTags:
    def test_normalize_tag(self):
        assert normalize_tag("late entry") == "LATE_ENTRY"
        assert normalize_tag(" fomo ") == "FOMO"
        assert normalize_tag("a-plus--setup") == "A_PLUS_SETUP"
        assert normalize_tag("") == ""

    def test_parse_and_format(self):
        assert parse_tags("fomo, FOMO,revenge,,") == ["FOMO", "REVENGE"]
        assert format_tags(["mistake", "late entry", "Mistake", " "]) == "MISTAKE,LATE_ENTRY"
