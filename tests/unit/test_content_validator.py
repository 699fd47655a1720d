"""Tests for validation of rendered rule text."""

import pytest

from src.knowledge_base.types import Severity, VerbosityLevel
from src.validation.content_validator import ContentValidator

DB = ["database_safety"]


@pytest.fixture
def validator(kb):
    return ContentValidator(kb)


class TestForbidPatterns:
    def test_destructive_sql_is_error(self, validator):
        result = validator.validate("DROP TABLE users;", DB)
        assert not result.valid
        assert [v.pattern for v in result.errors] == ["no_destructive_sql"]
        assert result.errors[0].match == "DROP TABLE"

    def test_guarded_drop_is_allowed(self, validator):
        result = validator.validate("DROP TABLE IF EXISTS users;", DB)
        assert result.valid
        assert result.violations == ()

    def test_unguarded_delete(self, validator):
        assert not validator.validate("delete from public.todos;", DB).valid
        assert validator.validate("DELETE FROM todos WHERE id = 1;", DB).valid

    def test_transaction_control_is_warning(self, validator):
        result = validator.validate("BEGIN;\nSELECT 1;\nCOMMIT;", DB)
        assert result.valid
        assert [v.pattern for v in result.warnings] == ["no_transaction_control"]

    def test_hardcoded_secret_is_info(self, validator):
        result = validator.validate(
            'const api_key = "sk-1234567890abcdef"', ["security_guidelines"]
        )
        assert result.valid
        assert len(result.violations) == 1
        assert result.violations[0].severity == Severity.INFO


class TestRequirePatterns:
    def test_new_table_without_rls(self, validator):
        result = validator.validate("CREATE TABLE todos (id uuid primary key);", DB)
        assert not result.valid
        violation = result.errors[0]
        assert violation.pattern == "has_rls_enabled"
        assert violation.match == "CREATE TABLE"

    def test_new_table_with_rls(self, validator):
        text = (
            "CREATE TABLE todos (id uuid primary key);\n"
            "ALTER TABLE todos ENABLE ROW LEVEL SECURITY;"
        )
        assert validator.validate(text, DB).valid

    def test_no_trigger_no_requirement(self, validator):
        assert validator.validate("SELECT * FROM todos;", DB).violations == ()


class TestApplicability:
    def test_patterns_only_apply_to_their_categories(self, validator):
        result = validator.validate("DROP TABLE users;", ["design_standards"])
        assert result.valid
        assert result.violations == ()

    def test_no_categories(self, validator):
        assert validator.validate("DROP TABLE users;", []).valid

    def test_category_order_does_not_matter(self, validator):
        text = 'DROP TABLE notes; secret = "supersecretvalue"'
        first = validator.validate(text, ["database_safety", "security_guidelines"])
        second = validator.validate(text, ("security_guidelines", "database_safety"))
        assert first == second
        assert [v.pattern for v in first.violations] == [
            "no_destructive_sql",
            "no_hardcoded_secrets",
        ]

    def test_to_dict(self, validator):
        data = validator.validate("DROP TABLE users;", DB).to_dict()
        assert data["valid"] is False
        assert data["violations"][0]["severity"] == "error"
        assert data["violations"][0]["pattern"] == "no_destructive_sql"


class TestShippedRules:
    @pytest.mark.parametrize("verbosity", list(VerbosityLevel))
    def test_shipped_rules_pass_validation(self, kb, validator, verbosity):
        categories = list(kb.rules)
        text = kb.combined_rules(categories, verbosity)
        result = validator.validate(text, categories)
        assert result.valid
        assert result.violations == ()

    @pytest.mark.parametrize("verbosity", list(VerbosityLevel))
    def test_shipped_contextual_rules_pass_validation(self, kb, validator, verbosity):
        for category, variants in kb.contextual_rules.items():
            for variant in variants:
                text = kb.render_contextual_rule(category, variant, verbosity)
                assert validator.validate(text, list(kb.rules)).violations == ()
