"""
Unit tests for anonymize.compiler

Tests column expressions, projections and COPY framing, including quoting of
hostile identifiers and seeds.
"""

import pytest

from anonymize.compiler import (
    COPY_TERMINATOR,
    build_anonymized_select,
    build_column_expression,
    build_copy_header,
    build_copy_out,
    build_projection,
)
from anonymize.rules import AnonymizeRule, RuleIndex, Strategy
from anonymize.tables import TableRef


class TestColumnExpression:
    """Test one term per strategy"""

    def test_preserve_is_bare_identifier(self):
        assert build_column_expression("id", Strategy.PRESERVE, "s1") == '"id"'

    def test_null(self):
        assert build_column_expression("ssn", Strategy.NULL, "s1") == 'NULL AS "ssn"'

    def test_zero(self):
        assert build_column_expression("balance", Strategy.ZERO, "s1") == '0 AS "balance"'

    def test_redact_ignores_seed(self):
        expr = build_column_expression("notes", Strategy.REDACT, "s1")

        assert expr == 'anonymize.anon_redact("notes") AS "notes"'
        assert "s1" not in expr

    def test_fake_email(self):
        expr = build_column_expression("email", Strategy.FAKE_EMAIL, "s1")
        assert expr == 'anonymize.anon_fake_email("email", \'s1\') AS "email"'

    @pytest.mark.parametrize("strategy,function", [
        (Strategy.FAKE_NAME, "anon_fake_name"),
        (Strategy.FAKE_FIRST_NAME, "anon_fake_first_name"),
        (Strategy.FAKE_LAST_NAME, "anon_fake_last_name"),
    ])
    def test_seeded_name_fakers(self, strategy, function):
        expr = build_column_expression("name", strategy, "s1")
        assert expr == f'anonymize.{function}("name", \'s1\') AS "name"'

    def test_fake_uuid_casts(self):
        expr = build_column_expression("uid", Strategy.FAKE_UUID, "s1")
        assert expr == 'anonymize.anon_fake_uuid("uid"::text, \'s1\')::uuid AS "uid"'

    def test_skip_at_column_level_preserves(self):
        assert build_column_expression("id", Strategy.SKIP, "s1") == '"id"'

    def test_unknown_strategy_name_preserves(self):
        assert build_column_expression("id", "scramble", "s1") == '"id"'

    def test_strategy_name_string(self):
        assert build_column_expression("ssn", "null", "s1") == 'NULL AS "ssn"'


class TestQuoting:
    """Test hostile identifiers and seeds"""

    def test_identifier_with_double_quote(self):
        expr = build_column_expression('we"ird', Strategy.NULL, "s1")
        assert expr == 'NULL AS "we""ird"'

    def test_identifier_with_injection(self):
        expr = build_column_expression('x"; DROP TABLE users; --', Strategy.PRESERVE, "s1")
        assert expr == '"x""; DROP TABLE users; --"'

    def test_seed_with_single_quote(self):
        expr = build_column_expression("email", Strategy.FAKE_EMAIL, "o'brien")
        assert "'o''brien'" in expr

    def test_seed_with_injection(self):
        expr = build_column_expression("email", Strategy.FAKE_EMAIL, "s'); DROP TABLE x; --")
        assert "'s''); DROP TABLE x; --'" in expr

    def test_mixed_case_identifier_kept(self):
        assert build_column_expression("UserName", Strategy.PRESERVE, "s") == '"UserName"'

    def test_invalid_inputs_raise(self):
        with pytest.raises(ValueError, match="cannot be empty"):
            build_column_expression("", Strategy.PRESERVE, "s")
        with pytest.raises(ValueError, match="NUL"):
            build_column_expression("email", Strategy.FAKE_EMAIL, "a\x00b")


class TestProjection:
    """Test whole-table projections"""

    def test_accounts_scenario(self, accounts_rules):
        """Columns keep catalog order and every changed term is aliased"""
        table = TableRef("public", "accounts")

        sql = build_anonymized_select(table, ["id", "email", "ssn"], accounts_rules, "s1")

        assert sql == (
            'SELECT "id", anonymize.anon_fake_email("email", \'s1\') AS "email", '
            'NULL AS "ssn" FROM ONLY "public"."accounts"'
        )

    def test_projection_one_term_per_column(self, accounts_rules):
        table = TableRef("public", "accounts")

        terms = build_projection(table, ["ssn", "id", "email", "created_at"], accounts_rules, "s1")

        assert len(terms) == 4
        assert terms[0] == 'NULL AS "ssn"'
        assert terms[1] == '"id"'
        assert terms[3] == '"created_at"'

    def test_rules_for_other_tables_ignored(self, accounts_rules):
        table = TableRef("app", "accounts")

        sql = build_anonymized_select(table, ["email"], accounts_rules, "s1")

        assert sql == 'SELECT "email" FROM ONLY "app"."accounts"'

    def test_no_columns(self):
        sql = build_anonymized_select(TableRef("public", "empty"), [], RuleIndex([]), "s1")
        assert sql == 'SELECT FROM ONLY "public"."empty"'

    def test_parent_table_reads_only_its_own_rows(self):
        """Partitions and inheritance children are not read through the parent"""
        sql = build_anonymized_select(TableRef("public", "measurements"), ["id"], RuleIndex([]), "s1")

        assert sql == 'SELECT "id" FROM ONLY "public"."measurements"'

    def test_pure(self, accounts_rules):
        """Identical inputs give byte-identical SQL"""
        table = TableRef("public", "accounts")
        columns = ["id", "email", "ssn"]

        first = build_anonymized_select(table, columns, accounts_rules, "s1")
        second = build_anonymized_select(table, columns, accounts_rules, "s1")

        assert first == second

    def test_seed_changes_sql(self, accounts_rules):
        table = TableRef("public", "accounts")

        assert build_anonymized_select(table, ["email"], accounts_rules, "a") != \
            build_anonymized_select(table, ["email"], accounts_rules, "b")


class TestCopyFraming:
    """Test COPY statements and framing"""

    def test_copy_out(self):
        assert build_copy_out('SELECT "id" FROM "public"."t"') == \
            'COPY (SELECT "id" FROM "public"."t") TO STDOUT'

    def test_header(self):
        header = build_copy_header(TableRef("public", "users"), ["id", "email"])
        assert header == 'COPY "public"."users" ("id", "email") FROM stdin;\n'

    def test_header_quotes_columns(self):
        header = build_copy_header(TableRef("App", "Users"), ['a"b'])
        assert header == 'COPY "App"."Users" ("a""b") FROM stdin;\n'

    def test_header_without_columns(self):
        assert build_copy_header(TableRef("public", "empty"), []) == \
            'COPY "public"."empty" FROM stdin;\n'

    def test_terminator(self):
        assert COPY_TERMINATOR == "\\.\n\n"

    def test_header_uses_all_catalog_columns(self):
        """Header lists every column, changed or not, in catalog order"""
        rules = RuleIndex([AnonymizeRule.column("public", "users", "email", "null")])
        table = TableRef("public", "users")
        columns = ["id", "email", "name"]

        header = build_copy_header(table, columns)
        select = build_anonymized_select(table, columns, rules, "s1")

        assert header.index('"id"') < header.index('"email"') < header.index('"name"')
        assert select.index('"id"') < select.index('NULL AS "email"') < select.index('"name"')
