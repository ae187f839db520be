"""Unit tests for configuration records and load-time defaulting."""

from dataclasses import FrozenInstanceError

import pytest

from autocdn.core.config_models import (
    DEFAULTED_FIELDS,
    ConfigurationRecord,
    SpeedTestSettings,
    TestType,
    apply_load_defaults,
    new_default_record,
    normalize_config_name,
    split_lines,
)
from autocdn.core.errors import ValidationFailure


class TestDecoding:
    """Test ConfigurationRecord.from_dict / to_dict."""

    def test_absent_keys_decode_as_zero(self):
        record = ConfigurationRecord.from_dict({})

        assert record.speed_test.routines == 0
        assert record.speed_test.max_loss_rate == 0.0
        assert record.speed_test.ipv4_file == ""
        assert record.speed_test.test_type is TestType.IPV4
        assert record.cloudflare.domains == ()

    def test_none_decodes_as_empty(self):
        assert ConfigurationRecord.from_dict(None) == ConfigurationRecord.from_dict({})

    def test_domainipv6s_key_maps_to_field(self, sample_record):
        assert sample_record.cloudflare.domain_ipv6s == ("v6.example.com",)
        assert sample_record.cloudflare.domains == ("a.example.com", "b.example.com")

    def test_to_dict_uses_yaml_keys(self, sample_record):
        data = sample_record.to_dict()

        assert data["cloudflare"]["domainipv6s"] == ["v6.example.com"]
        assert "domain_ipv6s" not in data["cloudflare"]
        assert data["speed_test"]["test_type"] == "IPV4"

    def test_to_dict_from_dict_preserves_record(self, sample_record):
        assert ConfigurationRecord.from_dict(sample_record.to_dict()) == sample_record

    def test_unknown_keys_ignored(self):
        record = ConfigurationRecord.from_dict({"speed_test": {"routines": 5, "colour": "blue"}})
        assert record.speed_test.routines == 5

    def test_numeric_strings_coerced(self):
        record = ConfigurationRecord.from_dict({"speed_test": {"routines": "50", "min_speed": "1.5"}})

        assert record.speed_test.routines == 50
        assert record.speed_test.min_speed == 1.5

    def test_bad_number_rejected(self):
        with pytest.raises(ValidationFailure):
            ConfigurationRecord.from_dict({"speed_test": {"routines": "many"}})

    def test_bool_is_not_a_number(self):
        with pytest.raises(ValidationFailure):
            ConfigurationRecord.from_dict({"speed_test": {"tcp_port": True}})

    def test_unknown_test_type_rejected(self):
        with pytest.raises(ValidationFailure):
            ConfigurationRecord.from_dict({"speed_test": {"test_type": "IPX"}})

    def test_section_must_be_mapping(self):
        with pytest.raises(ValidationFailure):
            ConfigurationRecord.from_dict({"speed_test": ["routines"]})


class TestLoadDefaults:
    """Test apply_load_defaults."""

    def test_zero_fields_replaced(self):
        loaded = apply_load_defaults(ConfigurationRecord.from_dict({}))
        defaults = SpeedTestSettings()

        for name in DEFAULTED_FIELDS:
            assert getattr(loaded.speed_test, name) == getattr(defaults, name)

    def test_defaults_values(self):
        loaded = apply_load_defaults(ConfigurationRecord.from_dict({}))

        assert loaded.speed_test.routines == 200
        assert loaded.speed_test.ping_times == 4
        assert loaded.speed_test.test_count == 10
        assert loaded.speed_test.download_time == 10
        assert loaded.speed_test.tcp_port == 443
        assert loaded.speed_test.max_delay == 9999
        assert loaded.speed_test.max_loss_rate == 1.0
        assert loaded.speed_test.ipv4_file == "ip.txt"
        assert loaded.speed_test.ipv6_file == "ipv6.txt"

    def test_present_values_kept(self, sample_record):
        loaded = apply_load_defaults(sample_record)

        assert loaded.speed_test.ping_times == 6
        assert loaded.speed_test.routines == 200
        assert loaded.speed_test.max_loss_rate == 1.0

    def test_min_fields_stay_zero(self, sample_record):
        loaded = apply_load_defaults(sample_record)

        assert loaded.speed_test.min_delay == 0
        assert loaded.speed_test.min_speed == 0.0

    def test_cloudflare_untouched(self, sample_record):
        assert apply_load_defaults(sample_record).cloudflare == sample_record.cloudflare

    def test_idempotent(self, sample_record):
        once = apply_load_defaults(sample_record)
        assert apply_load_defaults(once) is once

    def test_default_record_survives_defaulting(self):
        record = new_default_record()
        assert apply_load_defaults(record) == record


class TestWithField:
    """Test per-field edits."""

    def test_returns_new_value(self, sample_record):
        edited = sample_record.with_field("speed_test", "routines", "300")

        assert edited.speed_test.routines == 300
        assert sample_record.speed_test.routines == 0

    def test_records_are_frozen(self, sample_record):
        with pytest.raises(FrozenInstanceError):
            sample_record.speed_test.routines = 5

    def test_alias_accepted(self, sample_record):
        edited = sample_record.with_field("cloudflare", "domainipv6s", ["x.example.com"])
        assert edited.cloudflare.domain_ipv6s == ("x.example.com",)

    def test_list_from_text(self, sample_record):
        edited = sample_record.with_field("cloudflare", "domains", "one.example.com\n\n two.example.com \n")
        assert edited.cloudflare.domains == ("one.example.com", "two.example.com")

    def test_test_type_parsed(self, sample_record):
        edited = sample_record.with_field("speed_test", "test_type", "ipv6")
        assert edited.speed_test.test_type is TestType.IPV6

    def test_bool_from_text(self, sample_record):
        assert sample_record.with_field("speed_test", "httping", "yes").speed_test.httping is True
        assert sample_record.with_field("speed_test", "httping", "off").speed_test.httping is False

    def test_unknown_section(self, sample_record):
        with pytest.raises(ValidationFailure):
            sample_record.with_field("dns", "routines", 1)

    def test_unknown_field(self, sample_record):
        with pytest.raises(ValidationFailure):
            sample_record.with_field("speed_test", "threads", 1)


class TestTestType:

    def test_parse_case_insensitive(self):
        assert TestType.parse("ipv6") is TestType.IPV6

    def test_parse_empty_is_ipv4(self):
        assert TestType.parse("") is TestType.IPV4
        assert TestType.parse(None) is TestType.IPV4

    def test_candidate_file_follows_type(self, sample_record):
        ipv6 = sample_record.with_field("speed_test", "test_type", "IPV6")
        assert ipv6.speed_test.candidate_file() == "ipv6.txt"

    def test_candidate_file_falls_back_when_empty(self, sample_record):
        assert sample_record.speed_test.candidate_file() == "ip.txt"

    def test_domains_for(self, sample_record):
        assert sample_record.domains_for(TestType.IPV6) == ("v6.example.com",)
        assert sample_record.domains_for(TestType.IPV4) == ("a.example.com", "b.example.com")


class TestNames:

    @pytest.mark.parametrize("raw,expected", [
        ("home", "home.yaml"),
        ("  home  ", "home.yaml"),
        ("home.yaml", "home.yaml"),
        ("home.yml", "home.yml"),
        ("", ""),
        ("   ", ""),
    ])
    def test_normalize_config_name(self, raw, expected):
        assert normalize_config_name(raw) == expected

    def test_split_lines(self):
        assert split_lines("a\r\nb\n\n  c  ") == ("a", "b", "c")
