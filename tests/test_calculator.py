"""Tests for the carbon calculators."""

import pytest

from calculator import (
    calculate_daily_log_emissions, calculate_emissions, calculate_savings, get_average_baseline,
    get_daily_baseline, get_reduction_tips, calculate_footprint, suggested_monthly_budget,
    calculate_bill_emissions, EMISSION_CATEGORIES,
)


class TestDailyLog:
    """calculate_daily_log_emissions"""

    def test_empty_log_is_zero(self):
        result = calculate_daily_log_emissions({'meals': 0})
        assert result['total'] == 0
        assert set(result['breakdown']) == set(EMISSION_CATEGORIES)
        assert result['unit'] == 'kg CO2'

    def test_typical_day(self):
        result = calculate_daily_log_emissions({
            'trips': [{'mode': 'car', 'distance': 10}],
            'electricity_usage': 'low',
            'water_usage': 'typical',
            'meals': 3,
            'meal_type': 'vegetarian',
        })
        breakdown = result['breakdown']
        assert breakdown['travel'] == pytest.approx(1.92)
        assert breakdown['electricity'] == pytest.approx(0.95)
        assert breakdown['food'] == pytest.approx(1.36)
        assert breakdown['water'] == pytest.approx(0.05)
        assert breakdown['waste'] == 0
        assert result['total'] == pytest.approx(4.28)

    def test_total_is_sum_of_breakdown(self):
        result = calculate_daily_log_emissions({
            'trips': [{'mode': 'bus', 'distance': 7}, {'mode': 'train', 'distance': 33}],
            'electricity_usage': 'high',
            'appliances': ['ac', 'oven'],
            'water_usage': 'high',
            'meals': 2,
        })
        assert result['total'] == pytest.approx(sum(result['breakdown'].values()))
        assert all(value >= 0 for value in result['breakdown'].values())

    def test_usage_levels_are_monotonic(self):
        levels = ['low', 'typical', 'high']
        electricity = [calculate_daily_log_emissions({'electricity_usage': lvl})['breakdown']['electricity']
                       for lvl in levels]
        water = [calculate_daily_log_emissions({'water_usage': lvl})['breakdown']['water'] for lvl in levels]
        assert electricity == sorted(electricity)
        assert water == sorted(water)

    def test_flights_and_hotels_count_as_travel(self):
        result = calculate_daily_log_emissions({
            'flights': [{'type': 'short'}],
            'hotel_stays': [{'nights': 2}],
        })
        assert result['breakdown']['travel'] == pytest.approx(280)

    def test_unknown_appliance_is_ignored(self):
        result = calculate_daily_log_emissions({'appliances': ['toaster']})
        assert result['breakdown']['electricity'] == 0

    def test_zero_emission_modes(self):
        result = calculate_daily_log_emissions({'trips': [{'mode': 'walk', 'distance': 5},
                                                          {'mode': 'bike', 'distance': 12}]})
        assert result['breakdown']['travel'] == 0

    def test_base_diet_used_without_meal_type(self):
        vegan = calculate_daily_log_emissions({'meals': 3}, base_diet='vegan')
        meat = calculate_daily_log_emissions({'meals': 3}, base_diet='meat')
        assert vegan['breakdown']['food'] < meat['breakdown']['food']

    @pytest.mark.parametrize('log', [
        {'trips': [{'mode': 'car', 'distance': -1}]},
        {'trips': [{'mode': 'rocket', 'distance': 10}]},
        {'trips': [{'mode': 'car', 'distance': 'far'}]},
        {'electricity_usage': 'extreme'},
        {'meal_type': 'carnivore', 'meals': 3},
        {'flights': [{'type': 'medium'}]},
        {'trips': [{'mode': 'car', 'distance': 'Infinity'}]},
        {'trips': [{'mode': 'car', 'distance': float('inf')}]},
        {'trips': [{'mode': 'car', 'distance': float('nan')}]},
        {'trips': ['car']},
        {'trips': {'mode': 'car', 'distance': 5}},
        {'trips': [{'mode': ['car'], 'distance': 5}]},
        {'electricity_usage': ['low']},
        {'appliances': [['ac']]},
        {'hotel_stays': [2]},
    ])
    def test_invalid_input_raises(self, log):
        with pytest.raises(ValueError):
            calculate_daily_log_emissions(log)


class TestWeeklyCalculator:
    """calculate_emissions and the baseline helpers"""

    def test_average_inputs_match_baseline(self):
        result = calculate_emissions({
            'travel_km': 100, 'travel_mode': 'car',
            'electricity_kwh': 150,
            'diet_type': 'omnivore',
            'waste_kg': 10,
            'water_liters': 500,
        })
        assert result['breakdown']['travel'] == pytest.approx(19.2)
        assert result['breakdown']['electricity'] == pytest.approx(71.25)
        assert result['breakdown']['food'] == pytest.approx(17.5)
        assert result['breakdown']['waste'] == pytest.approx(5.7)
        assert result['total'] == pytest.approx(113.82)

    def test_baselines(self):
        assert get_average_baseline() == pytest.approx(113.82)
        assert get_daily_baseline() == pytest.approx(16.26)

    def test_renewable_energy_lowers_electricity(self):
        grid = calculate_emissions({'electricity_kwh': 150})
        green = calculate_emissions({'electricity_kwh': 150, 'renewable_percent': 100})
        assert green['breakdown']['electricity'] == pytest.approx(3.0)
        assert green['total'] < grid['total']

    def test_recycling_lowers_waste(self):
        landfill = calculate_emissions({'waste_kg': 10})
        recycled = calculate_emissions({'waste_kg': 10, 'recycling_percent': 100})
        assert recycled['breakdown']['waste'] == pytest.approx(0.2)
        assert recycled['breakdown']['waste'] < landfill['breakdown']['waste']

    def test_local_food_discount(self):
        result = calculate_emissions({'diet_type': 'vegan', 'local_food_percent': 100})
        assert result['breakdown']['food'] == pytest.approx(5.1)

    @pytest.mark.parametrize('data', [
        {'renewable_percent': 120},
        {'travel_km': -5},
        {'travel_km': True},
        {'diet_type': 'paleo'},
        {'travel_km': '1e999'},
        {'travel_mode': ['car'], 'travel_km': 5},
    ])
    def test_invalid_input_raises(self, data):
        with pytest.raises(ValueError):
            calculate_emissions(data)

    def test_savings_never_negative(self):
        assert calculate_savings(30, 50) == 20
        assert calculate_savings(60, 50) == 0

    def test_reduction_tips(self):
        assert get_reduction_tips({'travel': 5, 'electricity': 10}) == []
        tips = get_reduction_tips({'travel': 25, 'water': 1})
        assert len(tips) == 2
        assert 'cycling' in tips[0]


class TestFootprint:
    """calculate_footprint and suggested_monthly_budget"""

    def test_minimal_questionnaire(self):
        result = calculate_footprint({})
        assert result['daily_total'] == pytest.approx(5.63)
        assert set(result['breakdown']) == {'electricity', 'home_fuels', 'transport', 'flights', 'food',
                                            'lifestyle'}

    def test_household_size_splits_home_energy(self):
        alone = calculate_footprint({'household': {'size': 1, 'electricity_kwh': 300}})
        shared = calculate_footprint({'household': {'size': 3, 'electricity_kwh': 300}})
        assert shared['breakdown']['electricity'] < alone['breakdown']['electricity']

    def test_fewer_meals_lower_food(self):
        one = calculate_footprint({'food': {'meals_per_day': 1}})
        three = calculate_footprint({'food': {'meals_per_day': 3}})
        assert one['breakdown']['food'] < three['breakdown']['food']

    @pytest.mark.parametrize('data', [
        {'household': {'size': 0}},
        {'household': 'large'},
        {'household': {'fuels': {'use_non_electric': True, 'types': {'lpg': 1}}}},
        {'transport': {'flights': ['short']}},
        {'transport': {'flights': {'short': 2}}},
        {'transport': {'daily_distance_km': float('inf')}},
        {'lifestyle': {'devices': ['laptop']}},
    ])
    def test_invalid_questionnaire_raises(self, data):
        with pytest.raises(ValueError):
            calculate_footprint(data)

    def test_suggested_budget(self):
        assert suggested_monthly_budget(5.63) == pytest.approx(154.12)


class TestBillEmissions:
    """calculate_bill_emissions"""

    def test_electricity_units(self):
        assert calculate_bill_emissions('electricity', {'units_consumed': 100}) == (82.0, 0.82)

    def test_electricity_falls_back_to_amount(self):
        emissions, _ = calculate_bill_emissions('electricity', {'amount': 800})
        assert emissions == pytest.approx(82.0)

    def test_lpg_default_cylinder(self):
        emissions, factor = calculate_bill_emissions('lpg', {})
        assert emissions == pytest.approx(42.32)
        assert factor == 2.98

    def test_shopping_spend(self):
        emissions, _ = calculate_bill_emissions('shopping', {'total_amount': 1000})
        assert emissions == pytest.approx(5.0)

    @pytest.mark.parametrize('bill_type, fields', [
        ('electricity', {'units_consumed': 'Infinity'}),
        ('shopping', {'total_amount': 1e999}),
        ('lpg', ['cylinder_weight', 14.2]),
    ])
    def test_invalid_fields_raise(self, bill_type, fields):
        with pytest.raises(ValueError):
            calculate_bill_emissions(bill_type, fields)
