"""Unit tests for placeholder handling and call-string construction.

Tests the public API:
- standardize_placeholders(sql, style) - Convert %s / ? to a driver style
- count_placeholders(sql) / has_placeholders(sql)
- make_placeholders(count, style) - Placeholder runs for call strings
- build_call(name, placeholders, syntax) - Stored procedure call strings
- quote_identifier(name) - Quote cursor/table names
"""
import doctest

import dbcall.sql as sql_module
import pytest
from dbcall.exceptions import ValidationError
from dbcall.sql import CallSyntax, PlaceholderStyle, build_call
from dbcall.sql import count_placeholders, has_placeholders
from dbcall.sql import escape_percent, make_placeholders, quote_identifier
from dbcall.sql import standardize_placeholders


class TestStandardizePlaceholders:

    @pytest.mark.parametrize(('sql', 'style', 'expected'), [
        ('SELECT * FROM t WHERE a = %s AND b = %s', PlaceholderStyle.QMARK,
         'SELECT * FROM t WHERE a = ? AND b = ?'),
        ('SELECT * FROM t WHERE a = ? AND b = ?', PlaceholderStyle.FORMAT,
         'SELECT * FROM t WHERE a = %s AND b = %s'),
        ('SELECT * FROM t WHERE a = ? AND b = %s', PlaceholderStyle.NUMERIC,
         'SELECT * FROM t WHERE a = :1 AND b = :2'),
        ("SELECT '?' AS q, a FROM t WHERE b = ?", PlaceholderStyle.FORMAT,
         "SELECT '?' AS q, a FROM t WHERE b = %s"),
        ('SELECT "we%sird" FROM t WHERE b = %s', PlaceholderStyle.QMARK,
         'SELECT "we%sird" FROM t WHERE b = ?'),
        ('SELECT 1', PlaceholderStyle.NUMERIC, 'SELECT 1'),
    ], ids=['format_to_qmark', 'qmark_to_format', 'mixed_to_numeric', 'string_literal',
            'quoted_identifier', 'no_placeholders'])
    def test_conversion(self, sql, style, expected):
        assert standardize_placeholders(sql, style) == expected

    def test_escaped_quote_in_literal(self):
        sql = "SELECT * FROM t WHERE name = 'O''Brien?' AND id = ?"
        assert standardize_placeholders(sql, PlaceholderStyle.FORMAT) == \
            "SELECT * FROM t WHERE name = 'O''Brien?' AND id = %s"


class TestCountPlaceholders:

    def test_counts_outside_literals(self):
        assert count_placeholders("insert into t values (?, ?, '?')") == 2

    def test_has_placeholders(self):
        assert has_placeholders('select * from t where a = %s')
        assert not has_placeholders("select '?'")
        assert not has_placeholders(None)


class TestCallString:

    @pytest.mark.parametrize(('style', 'expected'), [
        (PlaceholderStyle.QMARK, '?,?,?'),
        (PlaceholderStyle.FORMAT, '%s,%s,%s'),
        (PlaceholderStyle.NUMERIC, ':1,:2,:3'),
    ])
    def test_make_placeholders(self, style, expected):
        assert make_placeholders(3, style) == expected

    def test_numeric_offset(self):
        assert make_placeholders(2, PlaceholderStyle.NUMERIC, start=3) == ':3,:4'

    def test_braced(self):
        assert build_call('proc1', '?,?,?', CallSyntax.BRACED) == '{ call proc1(?,?,?) }'

    def test_bare(self):
        assert build_call('pkg.proc1', [':1', ':2', ':3'], CallSyntax.BARE) == 'call pkg.proc1(:1,:2,:3)'

    def test_no_arguments(self):
        assert build_call('refresh', [], CallSyntax.BARE) == 'call refresh()'

    @pytest.mark.parametrize('name', ['', 'drop table x;', 'a.b.c.d', '1proc', 'p()'])
    def test_rejects_bad_names(self, name):
        with pytest.raises(ValidationError):
            build_call(name, '?', CallSyntax.BARE)


def test_quote_identifier():
    assert quote_identifier('<unnamed portal 1>') == '"<unnamed portal 1>"'
    assert quote_identifier('a"b') == '"a""b"'


class TestPercentEscaping:

    def test_literal_percent_escaped_for_format(self):
        sql = "SELECT * FROM t WHERE a = ? AND b LIKE 'x%'"
        assert standardize_placeholders(sql, PlaceholderStyle.FORMAT) == \
            "SELECT * FROM t WHERE a = %s AND b LIKE 'x%%'"

    def test_modulo_escaped_for_format(self):
        assert standardize_placeholders('SELECT a % 2 FROM t WHERE b = ?', PlaceholderStyle.FORMAT) == \
            'SELECT a %% 2 FROM t WHERE b = %s'

    def test_already_escaped_left_alone(self):
        assert escape_percent("LIKE 'x%%'") == "LIKE 'x%%'"

    @pytest.mark.parametrize('style', [PlaceholderStyle.QMARK, PlaceholderStyle.NUMERIC])
    def test_other_styles_untouched(self, style):
        sql = "SELECT * FROM t WHERE b LIKE 'x%' AND a = %s"
        assert "'x%'" in standardize_placeholders(sql, style)

    def test_no_placeholders_no_escaping(self):
        """Without parameters the driver does not interpret percent signs."""
        sql = "SELECT * FROM t WHERE b LIKE 'x%'"
        assert standardize_placeholders(sql, PlaceholderStyle.FORMAT) == sql


class TestPlaceholderTexts:

    def test_texts_replace_positions_in_order(self):
        sql = 'UPDATE t SET a = ?, b = ? WHERE c = ?'
        assert standardize_placeholders(sql, PlaceholderStyle.FORMAT, ['%s', '%s::date']) == \
            'UPDATE t SET a = %s, b = %s::date WHERE c = %s'


def test_module_examples():
    failed, attempted = doctest.testmod(sql_module, optionflags=4 | 8 | 32)
    assert attempted > 0
    assert failed == 0
