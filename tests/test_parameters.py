"""Tests for the payroll parameter table and its JSON schema."""

import json
import pytest
from datetime import date
from decimal import Decimal

from pydantic import ValidationError

from liquidation_engine.calculators.types import PayPeriod
from liquidation_engine.config import DEFAULT_PARAMETERS_FILE
from liquidation_engine.errors import InvalidInputError, NoParametersForPeriodError
from liquidation_engine.parameters import PayrollParameterTable, load_parameter_table
from liquidation_engine.schemas import PayrollParametersSchema

from conftest import make_parameters


class TestPeriodSelection:
    """Test selecting the record in force for a period."""

    def test_latest_record_before_period(self, parameter_table):
        params = parameter_table.for_period(PayPeriod(2024, 9))

        assert params.valid_from == date(2024, 7, 1)
        assert params.minimum_wage == Decimal("500000")

    def test_record_starting_on_period_start(self, parameter_table):
        params = parameter_table.for_period(PayPeriod(2024, 7))

        assert params.valid_from == date(2024, 7, 1)

    def test_earlier_record_for_earlier_period(self, parameter_table):
        params = parameter_table.for_period(PayPeriod(2024, 6))

        assert params.minimum_wage == Decimal("460000")

    def test_period_before_all_records_raises(self, parameter_table):
        with pytest.raises(NoParametersForPeriodError) as exc_info:
            parameter_table.for_period(PayPeriod(2023, 12))

        assert str(exc_info.value.period) == "2023-12"

    def test_empty_table_raises(self):
        with pytest.raises(NoParametersForPeriodError):
            PayrollParameterTable([]).for_period(PayPeriod(2024, 1))

    def test_duplicate_valid_from_rejected(self):
        with pytest.raises(InvalidInputError):
            PayrollParameterTable([make_parameters(), make_parameters()])

    def test_records_are_ordered(self):
        table = PayrollParameterTable(
            [make_parameters(valid_from=date(2025, 1, 1)), make_parameters(valid_from=date(2024, 1, 1))]
        )

        assert [r.valid_from for r in table] == [date(2024, 1, 1), date(2025, 1, 1)]


class TestParameterRecord:
    """Test PayrollParameters validation."""

    def test_family_allowance_limits_must_ascend(self):
        with pytest.raises(InvalidInputError):
            make_parameters(family_allowance_income_limit_b=Decimal("500000"))

    def test_afp_codes_are_upper_cased(self):
        params = make_parameters(afp_commission_rates={"habitat": "0.0127"})

        assert params.afp_commission_rates == {"HABITAT": Decimal("0.0127")}

    def test_numeric_fields_coerced_to_decimal(self):
        params = make_parameters(max_cesantia_uf=126.6, family_allowance_a=21243)

        assert params.max_cesantia_uf == Decimal("126.6")
        assert isinstance(params.family_allowance_a, Decimal)


class TestPackagedTable:
    """Test the parameter table shipped with the package."""

    def test_loads(self):
        table = load_parameter_table(DEFAULT_PARAMETERS_FILE)

        assert len(table) == 3

    def test_2025_values(self):
        params = load_parameter_table(DEFAULT_PARAMETERS_FILE).for_period(PayPeriod(2025, 3))

        assert params.minimum_wage == Decimal("529000")
        assert params.uf_value == Decimal("38384")
        assert params.afp_commission_rates["HABITAT"] == Decimal("0.0127")
        assert params.tax_brackets[1].threshold == Decimal("910291.50")

    def test_default_rates_kept(self):
        params = load_parameter_table(DEFAULT_PARAMETERS_FILE).for_period(PayPeriod(2024, 1))

        assert params.afp_rate == Decimal("0.10")
        assert params.sis_rate == Decimal("0.0188")


class TestParameterSchema:
    """Test JSON validation of parameter records."""

    def record(self, **overrides):
        data = {
            "valid_from": "2024-01-01",
            "minimum_wage": 460000,
            "uf_value": 36789,
            "max_imponible_uf": "84.3",
            "max_cesantia_uf": "126.6",
            "family_allowance_income_limit_a": 586227,
            "family_allowance_income_limit_b": 856247,
            "family_allowance_income_limit_c": 1335450,
            "family_allowance_a": 21243,
            "family_allowance_b": 13036,
            "family_allowance_c": 4119,
            "tax_brackets": [{"threshold": 0, "marginal_rate": "0"}],
        }
        data.update(overrides)
        return data

    def test_rate_override(self):
        params = PayrollParametersSchema.model_validate(
            self.record(sis_rate="0.0149")
        ).to_domain()

        assert params.sis_rate == Decimal("0.0149")
        assert params.health_rate == Decimal("0.07")

    def test_missing_brackets_rejected(self):
        with pytest.raises(ValidationError):
            PayrollParametersSchema.model_validate(self.record(tax_brackets=[]))

    def test_unknown_field_rejected(self):
        with pytest.raises(ValidationError):
            PayrollParametersSchema.model_validate(self.record(igv_rate="0.18"))

    def test_load_from_file(self, tmp_path):
        path = tmp_path / "params.json"
        path.write_text(json.dumps({"records": [self.record()]}), encoding="utf-8")

        table = load_parameter_table(path)

        assert table.for_period(PayPeriod(2024, 2)).uf_value == Decimal("36789")
