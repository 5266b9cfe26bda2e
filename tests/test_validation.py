"""Unit tests for the rule validator.

Tests cover:
- Rule expression parsing
- Required and implicit rules on empty values
- Type, format, size and membership rules
- Cross-field rules
- Message rendering (custom messages, attribute names, size variants)
- ErrorBag behavior
"""

import re

import pytest
from jsonschema import SchemaError

from formstrategy.errors import RuleNotFoundError, UnknownLanguageError
from formstrategy.types import RuleSpec
from formstrategy.validation import ErrorBag, RuleValidator, default_attribute_formatter, parse_rules


def errors_for(data, rules, messages=None, lang=None):
    validator = RuleValidator(data, rules, messages, lang)
    validator.passes()
    return validator.errors.all()


class TestRuleParsing:
    """Test parsing of rule expressions."""

    def test_pipe_separated(self):
        specs = parse_rules("required|email")
        assert [s.name for s in specs] == ["required", "email"]

    def test_arguments(self):
        specs = parse_rules("between:1,10")
        assert specs == [RuleSpec("between", ("1", "10"))]

    def test_list_form_keeps_pipes_in_regex(self):
        specs = parse_rules(["required", "regex:/^(a|b)$/"])
        assert specs[1] == RuleSpec("regex", ("/^(a|b)$/",))

    def test_unknown_rule(self):
        with pytest.raises(RuleNotFoundError) as exc_info:
            parse_rules("required|sparkly", "name")

        assert exc_info.value.rule == "sparkly"
        assert exc_info.value.attribute == "name"

    def test_unknown_rule_raised_at_construction(self):
        with pytest.raises(RuleNotFoundError):
            RuleValidator({}, {"name": "sparkly"})


class TestRequired:
    """Test the required rule and empty-value handling."""

    @pytest.mark.parametrize("value", [None, "", "   ", []])
    def test_blank_values_fail(self, value):
        assert errors_for({"name": value}, {"name": "required"}) == {
            "name": ["The name field is required."]
        }

    def test_missing_field_fails(self):
        assert errors_for({}, {"name": "required"}) == {"name": ["The name field is required."]}

    @pytest.mark.parametrize("value", ["x", 0, False, ["a"]])
    def test_present_values_pass(self, value):
        assert errors_for({"name": value}, {"name": "required"}) == {}

    def test_empty_value_skips_other_rules(self):
        """Only required should fail for an empty email."""
        assert errors_for({"email": ""}, {"email": "required|email"}) == {
            "email": ["The email field is required."]
        }

    def test_optional_empty_field_passes(self):
        assert errors_for({"email": ""}, {"email": "email|min:5"}) == {}

    def test_accepted_is_implicit(self):
        assert errors_for({}, {"terms": "accepted"}) == {"terms": ["The terms must be accepted."]}
        assert errors_for({"terms": "yes"}, {"terms": "accepted"}) == {}


class TestTypeAndFormatRules:
    """Test type and format rules."""

    def test_email(self):
        assert errors_for({"e": "a@example.com"}, {"e": "email"}) == {}
        assert errors_for({"e": "not-an-email"}, {"e": "email"}) == {"e": ["The e format is invalid."]}
        assert errors_for({"e": 42}, {"e": "email"}) == {"e": ["The e format is invalid."]}

    def test_url(self):
        assert errors_for({"site": "https://example.com/a"}, {"site": "url"}) == {}
        assert errors_for({"site": "example"}, {"site": "url"}) == {"site": ["The site format is invalid."]}

    def test_numeric(self):
        assert errors_for({"n": "12.5"}, {"n": "numeric"}) == {}
        assert errors_for({"n": 3}, {"n": "numeric"}) == {}
        assert errors_for({"n": "abc"}, {"n": "numeric"}) == {"n": ["The n must be a number."]}

    def test_integer(self):
        assert errors_for({"n": "12"}, {"n": "integer"}) == {}
        assert errors_for({"n": "1.5"}, {"n": "integer"}) == {"n": ["The n must be an integer."]}

    def test_string_and_array(self):
        assert errors_for({"s": 5}, {"s": "string"}) == {"s": ["The s must be a string."]}
        assert errors_for({"a": "x"}, {"a": "array"}) == {"a": ["The a must be an array."]}
        assert errors_for({"a": ["x"]}, {"a": "array"}) == {}

    def test_boolean(self):
        assert errors_for({"b": True}, {"b": "boolean"}) == {}
        assert errors_for({"b": "maybe"}, {"b": "boolean"}) == {
            "b": ["The b attribute has to be a boolean."]
        }

    def test_alpha_family(self):
        assert errors_for({"a": "abc"}, {"a": "alpha"}) == {}
        assert errors_for({"a": "ab1"}, {"a": "alpha"}) != {}
        assert errors_for({"a": 123}, {"a": "alpha_num"}) == {}
        assert errors_for({"a": "a-b_c"}, {"a": "alpha_dash"}) == {}
        assert errors_for({"a": "a b"}, {"a": "alpha_dash"}) != {}

    def test_trailing_newline_is_rejected(self):
        """Anchored rules should not accept a value that ends in a newline."""
        assert errors_for({"p": "a@b.co\n"}, {"p": "email"}) == {"p": ["The p format is invalid."]}
        assert errors_for({"p": "https://example.com\n"}, {"p": "url"}) == {"p": ["The p format is invalid."]}
        assert errors_for({"p": "123\n"}, {"p": "digits:3"}) == {"p": ["The p must be 3 digits."]}
        assert errors_for({"p": "abc\n"}, {"p": "alpha"}) == {
            "p": ["The p field must contain only alphabetic characters."]
        }
        assert errors_for({"p": "ab1\n"}, {"p": "alpha_num"}) != {}
        assert errors_for({"p": "a-b\n"}, {"p": "alpha_dash"}) != {}
        assert errors_for({"p": "12\n"}, {"p": "integer"}) == {"p": ["The p must be an integer."]}
        assert errors_for({"p": "1.5\n"}, {"p": "numeric"}) == {"p": ["The p must be a number."]}

    def test_numeric_exponent_and_leading_dot(self):
        for value in ("1e3", ".5", "-2.5E-3", "+4.", "7"):
            assert errors_for({"n": value}, {"n": "numeric"}) == {}, value
        for value in ("1e", ".", "e3", "1.2.3"):
            assert errors_for({"n": value}, {"n": "numeric"}) == {"n": ["The n must be a number."]}, value

    def test_exponent_string_compares_by_value(self):
        assert errors_for({"n": "1e3"}, {"n": "numeric|max:999"}) == {
            "n": ["The n may not be greater than 999."]
        }


class TestSizeRules:
    """Test min, max, between and size."""

    def test_string_length(self):
        assert errors_for({"name": "ab"}, {"name": "min:3"}) == {
            "name": ["The name must be at least 3 characters."]
        }
        assert errors_for({"name": "abcd"}, {"name": "max:3"}) == {
            "name": ["The name may not be greater than 3 characters."]
        }

    def test_numbers_compare_by_value(self):
        assert errors_for({"age": 17}, {"age": "min:18"}) == {"age": ["The age must be at least 18."]}
        assert errors_for({"age": 30}, {"age": "min:18"}) == {}

    def test_numeric_strings_compare_by_value_with_numeric_rule(self):
        assert errors_for({"age": "9"}, {"age": "numeric|min:18"}) == {"age": ["The age must be at least 18."]}
        # Without a numeric rule "9" is a one-character string
        assert errors_for({"age": "9"}, {"age": "min:1"}) == {}

    def test_between(self):
        assert errors_for({"n": 11}, {"n": "between:1,10"}) == {
            "n": ["The n field must be between 1 and 10."]
        }
        assert errors_for({"s": "a"}, {"s": "between:2,4"}) == {
            "s": ["The s field must be between 2 and 4 characters."]
        }

    def test_size(self):
        assert errors_for({"code": "abc"}, {"code": "size:3"}) == {}
        assert errors_for({"code": "ab"}, {"code": "size:3"}) == {"code": ["The code must be 3 characters."]}

    def test_list_length(self):
        assert errors_for({"tags": ["a"]}, {"tags": "array|min:2"}) == {
            "tags": ["The tags must be at least 2 characters."]
        }

    def test_digits(self):
        assert errors_for({"pin": "1234"}, {"pin": "digits:4"}) == {}
        assert errors_for({"pin": 123}, {"pin": "digits:4"}) == {"pin": ["The pin must be 4 digits."]}


class TestMembershipAndPatternRules:
    """Test in, not_in and regex."""

    def test_in(self):
        assert errors_for({"c": "red"}, {"c": "in:red,green"}) == {}
        assert errors_for({"c": "blue"}, {"c": "in:red,green"}) == {"c": ["The selected c is invalid."]}
        assert errors_for({"n": 2}, {"n": "in:1,2,3"}) == {}

    def test_not_in(self):
        assert errors_for({"c": "red"}, {"c": "not_in:red,green"}) == {"c": ["The selected c is invalid."]}
        assert errors_for({"c": "blue"}, {"c": "not_in:red,green"}) == {}

    def test_regex(self):
        assert errors_for({"code": "AB"}, {"code": ["regex:/^(AB|CD)$/"]}) == {}
        assert errors_for({"code": "ab"}, {"code": ["regex:/^(AB|CD)$/i"]}) == {}
        assert errors_for({"code": "XY"}, {"code": ["regex:/^(AB|CD)$/"]}) == {
            "code": ["The code format is invalid."]
        }

    def test_malformed_regex_propagates(self):
        validator = RuleValidator({"code": "x"}, {"code": ["regex:/([a-z/"]})

        with pytest.raises((SchemaError, re.error)):
            validator.passes()


class TestCrossFieldRules:
    """Test same, different and confirmed."""

    def test_same(self):
        rules = {"confirm_email": "same:email"}
        assert errors_for({"email": "a@b.co", "confirm_email": "a@b.co"}, rules) == {}
        assert errors_for({"email": "a@b.co", "confirm_email": "x@b.co"}, rules) == {
            "confirm_email": ["The confirm email and email fields must match."]
        }

    def test_different(self):
        rules = {"new_password": "different:old_password"}
        assert errors_for({"old_password": "a", "new_password": "a"}, rules) == {
            "new_password": ["The new password and old password must be different."]
        }

    def test_confirmed(self):
        rules = {"password": "confirmed"}
        assert errors_for({"password": "s3cret", "password_confirmation": "s3cret"}, rules) == {}
        assert errors_for({"password": "s3cret"}, rules) == {
            "password": ["The password confirmation does not match."]
        }


class TestMessages:
    """Test message selection and rendering."""

    def test_field_rule_custom_message(self):
        messages = {"email.email": "This is not a valid email address"}
        assert errors_for({"email": "x"}, {"email": "email"}, messages) == {
            "email": ["This is not a valid email address"]
        }

    def test_rule_custom_message_with_placeholders(self):
        messages = {"min": ":attribute needs :min or more"}
        assert errors_for({"user_name": "ab"}, {"user_name": "min:3"}, messages) == {
            "user_name": ["user name needs 3 or more"]
        }

    def test_field_rule_message_wins_over_rule_message(self):
        messages = {"required": "generic", "name.required": "specific"}
        assert errors_for({}, {"name": "required", "age": "required"}, messages) == {
            "name": ["specific"],
            "age": ["generic"],
        }

    def test_multiple_failures_in_rule_order(self):
        assert errors_for({"code": "a1"}, {"code": "alpha|min:3"}) == {
            "code": [
                "The code field must contain only alphabetic characters.",
                "The code must be at least 3 characters.",
            ]
        }

    def test_untranslated_rule_falls_back_to_english(self):
        assert errors_for({"n": "x"}, {"n": "numeric"}, lang="de") == {"n": ["The n must be a number."]}

    def test_lang_change_after_construction(self):
        validator = RuleValidator({"email": "x"}, {"email": "email"})
        validator.lang = "es"

        assert validator.fails()
        assert validator.errors.get("email") == ["El campo email no es un correo válido"]

    def test_unknown_lang(self):
        validator = RuleValidator({}, {"name": "required"}, lang="xx")

        with pytest.raises(UnknownLanguageError):
            validator.passes()

    def test_attribute_formatter(self):
        assert default_attribute_formatter("confirm_email") == "confirm email"
        assert default_attribute_formatter("items[0]") == "items 0"

        validator = RuleValidator({}, {"first_name": "required"})
        validator.set_attribute_formatter(lambda name: name.upper())
        validator.passes()

        assert validator.errors.first("first_name") == "The FIRST_NAME field is required."


class TestValidatorState:
    """Test passes/fails, nested lookup and ErrorBag."""

    def test_passes_and_fails(self):
        validator = RuleValidator({"name": "Ada"}, {"name": "required"})

        assert validator.passes() is True
        assert validator.fails() is False
        assert validator.errors.all() == {}

    def test_errors_reset_between_runs(self):
        data = {"name": ""}
        validator = RuleValidator(data, {"name": "required"})

        assert validator.fails()
        data["name"] = "Ada"
        assert validator.passes()
        assert validator.errors.get("name") == []

    def test_rerun_with_changed_value_types(self):
        """Compiled rules should follow the value between runs."""
        data = {"code": 5}
        validator = RuleValidator(data, {"code": "max:3"})

        assert validator.fails()
        assert validator.errors.get("code") == ["The code may not be greater than 3."]

        data["code"] = "abcdef"
        assert validator.fails()
        assert validator.errors.get("code") == ["The code may not be greater than 3 characters."]

        data["code"] = "ab"
        assert validator.passes()

    def test_rerun_cross_field_rule_sees_new_value(self):
        data = {"email": "a@b.co", "confirm_email": "x@b.co"}
        validator = RuleValidator(data, {"confirm_email": "same:email"})

        assert validator.fails()
        data["email"] = "x@b.co"
        assert validator.passes()

    def test_nested_lookup(self):
        data = {"user": {"email": "bad"}}
        assert errors_for(data, {"user.email": "required|email"}) == {
            "user.email": ["The user.email format is invalid."]
        }

    def test_none_data(self):
        assert errors_for(None, {"name": "required"}) == {"name": ["The name field is required."]}

    def test_error_bag(self):
        bag = ErrorBag()
        assert not bag
        assert bag.first("x") is None

        bag.add("x", "one")
        bag.add("x", "two")

        assert bag
        assert bag.has("x")
        assert not bag.has("y")
        assert bag.first("x") == "one"
        assert bag.get("x") == ["one", "two"]
        assert bag.count() == 2
        assert bag.all() == {"x": ["one", "two"]}
