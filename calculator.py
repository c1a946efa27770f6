"""
Carbon emission calculator.

All functions are pure: they take plain dicts/numbers (as decoded from a JSON
request body) and return plain dicts/numbers. Every value is in kg CO2e.
Invalid input raises ValueError so route handlers can map it to a 400.
"""

import math

# kg CO2 per km
TRAVEL_FACTORS = {
    'car': 0.192,
    'motorcycle': 0.113,
    'bus': 0.089,
    'train': 0.041,
    'flight': 0.255,
    'ebike': 0.01,
    'bike': 0,
    'walk': 0,
}

# kg CO2 per kWh
ELECTRICITY_FACTORS = {
    'grid': 0.475,
    'renewable': 0.02,
}

# kg CO2 per week
DIET_FACTORS = {
    'meat': 28.5,
    'omnivore': 17.5,
    'pescatarian': 12.0,
    'vegetarian': 9.5,
    'vegan': 6.0,
}
LOCAL_FOOD_MULTIPLIER = 0.85

# kg CO2 per kg of waste
WASTE_FACTORS = {
    'landfill': 0.57,
    'recycled': 0.02,
}

# kg CO2 per 1000 litres
WATER_FACTOR = 0.344

DAILY_ELECTRICITY_KWH = {'low': 2, 'typical': 5, 'high': 12}
DAILY_WATER_LITRES = {'low': 50, 'typical': 150, 'high': 400}

# Extra kWh for a day on which the appliance was used
APPLIANCE_KWH = {
    'ac': 1.5,
    'heater': 2.0,
    'oven': 0.8,
    'ev_charge': 5.0,
}

# kg CO2 per flight in a daily log
DAILY_FLIGHT_KG = {'short': 250, 'long': 1000}
HOTEL_NIGHT_KG = 15

# Bills (India)
BILL_ELECTRICITY_FACTOR = 0.82   # kg per kWh
BILL_RUPEES_PER_KWH = 8
BILL_LPG_FACTOR = 2.98           # kg per kg of LPG
BILL_DEFAULT_CYLINDER_KG = 14.2
BILL_SPEND_FACTOR = 0.005        # kg per rupee

EMISSION_CATEGORIES = ('travel', 'electricity', 'food', 'waste', 'water')


# --- Input helpers ---

def _number(value, field, default=0):
    """Coerce a JSON value to a non-negative float."""
    if value is None or value == '':
        return float(default)
    if isinstance(value, bool):
        raise ValueError(f'{field} must be a number')
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValueError(f'{field} must be a number')
    if not math.isfinite(number) or number < 0:
        raise ValueError(f'{field} must be zero or positive')
    return number


def _percent(value, field):
    number = _number(value, field)
    if number > 100:
        raise ValueError(f'{field} must be between 0 and 100')
    return number / 100


def _lookup(table, key, field):
    if not isinstance(key, str) or key not in table:
        raise ValueError(f'Unknown {field}: {key!r}')
    return table[key]


def _records(value, field):
    """A list of objects such as ``trips``; missing means none."""
    if value is None or value == '':
        return []
    if not isinstance(value, list) or not all(isinstance(item, dict) for item in value):
        raise ValueError(f'{field} must be a list of objects')
    return value


def _mapping(value, field):
    if value is None or value == '':
        return {}
    if not isinstance(value, dict):
        raise ValueError(f'{field} must be an object')
    return value


def _names(value, field):
    if value is None or value == '':
        return []
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ValueError(f'{field} must be a list of names')
    return value


def _result(breakdown):
    """Round each subtotal to 2 dp and total the rounded values."""
    rounded = {key: round(breakdown.get(key, 0), 2) for key in EMISSION_CATEGORIES}
    return {
        'total': round(sum(rounded.values()), 2),
        'breakdown': rounded,
        'unit': 'kg CO2',
    }


# --- Calculators ---

def calculate_daily_log_emissions(log, base_diet='omnivore'):
    """Estimate one day's emissions from a structured daily log.

    Args:
        log: dict with ``trips`` ([{mode, distance}]), ``electricity_usage`` and
            ``water_usage`` (low/typical/high, absent means nothing used),
            ``meals``, optional ``meal_type``, ``appliances`` (names),
            ``flights`` ([{type: short|long, count}]) and ``hotel_stays``
            ([{nights}]).
        base_diet: the user's usual diet, used when ``meal_type`` is missing.

    Returns:
        dict with ``total``, ``breakdown`` (travel, electricity, food, waste,
        water) and ``unit``.
    """
    travel = 0.0
    for trip in _records(log.get('trips'), 'trips'):
        factor = _lookup(TRAVEL_FACTORS, trip.get('mode'), 'travel mode')
        travel += _number(trip.get('distance'), 'distance') * factor

    for flight in _records(log.get('flights'), 'flights'):
        per_flight = _lookup(DAILY_FLIGHT_KG, flight.get('type'), 'flight type')
        travel += per_flight * _number(flight.get('count'), 'flight count', default=1)

    for stay in _records(log.get('hotel_stays'), 'hotel_stays'):
        travel += _number(stay.get('nights'), 'hotel nights') * HOTEL_NIGHT_KG

    kwh = 0.0
    electricity_usage = log.get('electricity_usage')
    if electricity_usage:
        kwh = _lookup(DAILY_ELECTRICITY_KWH, electricity_usage, 'electricity usage level')
    # Unknown appliances add nothing
    for appliance in _names(log.get('appliances'), 'appliances'):
        kwh += APPLIANCE_KWH.get(appliance, 0)
    electricity = kwh * ELECTRICITY_FACTORS['grid']

    water = 0.0
    water_usage = log.get('water_usage')
    if water_usage:
        litres = _lookup(DAILY_WATER_LITRES, water_usage, 'water usage level')
        water = litres / 1000 * WATER_FACTOR

    diet = log.get('meal_type') or base_diet or 'omnivore'
    weekly_food = _lookup(DIET_FACTORS, diet, 'diet')
    meals = _number(log.get('meals'), 'meals')
    food = (meals / 3) * (weekly_food / 7)

    return _result({
        'travel': travel,
        'electricity': electricity,
        'food': food,
        'waste': 0,
        'water': water,
    })


def calculate_emissions(data):
    """Weekly general-purpose calculator.

    ``data`` keys: travel_km, travel_mode, electricity_kwh, renewable_percent,
    diet_type, local_food_percent, waste_kg, recycling_percent, water_liters.
    Percentages are 0-100.
    """
    travel_mode = data.get('travel_mode') or 'car'
    travel = _number(data.get('travel_km'), 'travel_km') * _lookup(TRAVEL_FACTORS, travel_mode, 'travel mode')

    kwh = _number(data.get('electricity_kwh'), 'electricity_kwh')
    renewable = _percent(data.get('renewable_percent'), 'renewable_percent')
    electricity = (
        kwh * (1 - renewable) * ELECTRICITY_FACTORS['grid']
        + kwh * renewable * ELECTRICITY_FACTORS['renewable']
    )

    diet = data.get('diet_type') or 'omnivore'
    food = _lookup(DIET_FACTORS, diet, 'diet')
    local = _percent(data.get('local_food_percent'), 'local_food_percent')
    if local > 0:
        food *= 1 - local * (1 - LOCAL_FOOD_MULTIPLIER)

    waste_kg = _number(data.get('waste_kg'), 'waste_kg')
    recycled = _percent(data.get('recycling_percent'), 'recycling_percent')
    waste = (
        waste_kg * (1 - recycled) * WASTE_FACTORS['landfill']
        + waste_kg * recycled * WASTE_FACTORS['recycled']
    )

    water = _number(data.get('water_liters'), 'water_liters') / 1000 * WATER_FACTOR

    return _result({
        'travel': travel,
        'electricity': electricity,
        'food': food,
        'waste': waste,
        'water': water,
    })


def calculate_savings(current, baseline):
    """Savings against a baseline, never negative."""
    return round(max(0, baseline - current), 2)


def get_average_baseline():
    """Typical weekly emissions: 100 km by car, 150 kWh, omnivore, 10 kg landfill, 500 L."""
    total = (
        100 * TRAVEL_FACTORS['car']
        + 150 * ELECTRICITY_FACTORS['grid']
        + DIET_FACTORS['omnivore']
        + 10 * WASTE_FACTORS['landfill']
        + 500 / 1000 * WATER_FACTOR
    )
    return round(total, 2)


def get_daily_baseline():
    return round(get_average_baseline() / 7, 2)


def get_reduction_tips(breakdown):
    tips = []
    if breakdown.get('travel', 0) > 20:
        tips.append('Try cycling or public transport for short trips')
    if breakdown.get('electricity', 0) > 70:
        tips.append('Switch to LED bulbs and unplug unused devices')
    if breakdown.get('food', 0) > 15:
        tips.append('Consider reducing meat consumption or buying local produce')
    if breakdown.get('waste', 0) > 5:
        tips.append('Increase recycling and composting to reduce landfill waste')
    if breakdown.get('water', 0) > 0.5:
        tips.append('Fix leaks and use water-efficient appliances')
    return tips


# --- Onboarding footprint ---

ONBOARDING_ELECTRICITY_FACTOR = 0.85     # kg per kWh
ONBOARDING_WATER_FACTOR = 0.001          # kg per litre
WATER_UNIT_LITRES = {'litres': 1, 'm3': 1000, 'gallons': 3.785}

FUEL_FACTORS = {
    'natural_gas': 2.03,
    'lpg': 1.51,          # per litre
    'heating_oil': 2.5,
    'coal': 2.4,
    'wood': 0.1,
    'district': 0.2,
}
LPG_KG_FACTOR = 2.96
FUEL_KWH_FACTOR = 0.2

COMMUTE_FACTORS = {
    'car': 0.19,
    'two_wheeler': 0.08,
    'bus': 0.10,
    'metro': 0.04,
    'bicycle': 0,
    'walking': 0,
    'wfh': 0,
}

FLIGHT_HAUL_KG = {'short': 150, 'medium': 400, 'long': 1000}
FLIGHT_CLASS_MULTIPLIERS = {'economy': 1, 'premium': 1.5, 'business': 3, 'first': 4}

# kg per day
DAILY_DIET_FACTORS = {
    'vegan': 2.89,
    'vegetarian': 3.81,
    'pescatarian': 3.91,
    'meat_no_beef': 5.63,
    'meat_high': 7.19,
}

# kg per item; devices are amortised over their replacement cycle (years)
SHOPPING_FACTORS = {'tshirt': 5, 'jeans': 25, 'shoes': 15}
DEVICE_FACTORS = {'smartphone': (60, 3), 'laptop': (200, 5), 'tv': (150, 7)}
HOTEL_NIGHT_LIFESTYLE_KG = 25


def calculate_footprint(data):
    """Daily footprint from the onboarding questionnaire.

    Args:
        data: dict with ``household`` (size, electricity_kwh per month,
            water_usage + water_unit per month, fuels), ``transport``
            (main_mode, daily_distance_km, flights by haul then class per
            year), ``food`` (diet, meals_per_day) and ``lifestyle``
            (hotel_nights, clothing, devices).

    Returns:
        dict with ``daily_total`` and ``breakdown`` (electricity, home_fuels,
        transport, flights, food, lifestyle).
    """
    household = _mapping(data.get('household'), 'household')
    transport = _mapping(data.get('transport'), 'transport')
    food = _mapping(data.get('food'), 'food')
    lifestyle = _mapping(data.get('lifestyle'), 'lifestyle')

    size = _number(household.get('size'), 'household size', default=1)
    if size < 1:
        raise ValueError('household size must be at least 1')

    breakdown = {}

    monthly_kwh = _number(household.get('electricity_kwh'), 'electricity_kwh')
    breakdown['electricity'] = monthly_kwh * ONBOARDING_ELECTRICITY_FACTOR * 12 / 365 / size

    water_unit = household.get('water_unit') or 'litres'
    litres = _number(household.get('water_usage'), 'water_usage') * _lookup(WATER_UNIT_LITRES, water_unit, 'water unit')
    home_fuels = litres * ONBOARDING_WATER_FACTOR * 12 / 365 / size

    fuels = _mapping(household.get('fuels'), 'fuels')
    if fuels.get('use_non_electric'):
        fuel_types = _names(fuels.get('types'), 'fuel types') or ['lpg']
        main_fuel = fuel_types[0]
        factor = _lookup(FUEL_FACTORS, main_fuel, 'fuel type')
        unit = fuels.get('unit') or 'kg'
        if unit == 'kg' and main_fuel == 'lpg':
            factor = LPG_KG_FACTOR
        elif unit == 'kwh':
            factor = FUEL_KWH_FACTOR
        monthly_fuel = _number(fuels.get('amount'), 'fuel amount') * factor
        home_fuels += monthly_fuel * 12 / 365 / size
    breakdown['home_fuels'] = home_fuels

    mode = transport.get('main_mode') or 'car'
    breakdown['transport'] = (
        _number(transport.get('daily_distance_km'), 'daily_distance_km')
        * _lookup(COMMUTE_FACTORS, mode, 'commute mode')
    )

    annual_flights = 0.0
    for haul, classes in _mapping(transport.get('flights'), 'flights').items():
        per_flight = _lookup(FLIGHT_HAUL_KG, haul, 'flight haul')
        for cabin, count in _mapping(classes, f'{haul} flights').items():
            multiplier = _lookup(FLIGHT_CLASS_MULTIPLIERS, cabin, 'flight class')
            annual_flights += _number(count, 'flight count') * per_flight * multiplier
    breakdown['flights'] = annual_flights / 365

    diet = food.get('diet') or 'meat_no_beef'
    daily_food = _lookup(DAILY_DIET_FACTORS, diet, 'diet')
    meals = _number(food.get('meals_per_day'), 'meals_per_day', default=3)
    if meals <= 1:
        daily_food *= 0.6
    elif meals == 2:
        daily_food *= 0.85
    elif meals >= 4:
        daily_food *= 1.15
    breakdown['food'] = daily_food

    annual_lifestyle = _number(lifestyle.get('hotel_nights'), 'hotel_nights') * HOTEL_NIGHT_LIFESTYLE_KG
    clothing = _mapping(lifestyle.get('clothing'), 'clothing')
    per_year = 12 if clothing.get('period') == 'monthly' else 1
    annual_lifestyle += _number(clothing.get('tshirts'), 'tshirts') * per_year * SHOPPING_FACTORS['tshirt']
    annual_lifestyle += _number(clothing.get('jeans'), 'jeans') * per_year * SHOPPING_FACTORS['jeans']
    annual_lifestyle += _number(clothing.get('shoes'), 'shoes') * per_year * SHOPPING_FACTORS['shoes']
    devices = _mapping(lifestyle.get('devices'), 'devices')
    for device, (kg, years) in DEVICE_FACTORS.items():
        annual_lifestyle += _number(devices.get(device), device) * kg / years
    breakdown['lifestyle'] = annual_lifestyle / 365

    breakdown = {key: round(value, 2) for key, value in breakdown.items()}
    return {
        'daily_total': round(sum(breakdown.values()), 2),
        'breakdown': breakdown,
    }


def suggested_monthly_budget(daily_total):
    """Monthly budget that asks for a 10% cut on the onboarding footprint."""
    yearly = daily_total * 365
    return round(yearly * 0.9 / 12, 2)


# --- Bills ---

def calculate_bill_emissions(bill_type, fields):
    """Emissions for a scanned/confirmed bill.

    Returns:
        (emissions_kg, emission_factor)
    """
    fields = _mapping(fields, 'bill fields')
    if bill_type == 'electricity':
        units = _number(fields.get('units_consumed'), 'units_consumed')
        if units <= 0:
            amount = _number(fields.get('amount') or fields.get('total_amount'), 'amount')
            units = amount / BILL_RUPEES_PER_KWH
        return round(units * BILL_ELECTRICITY_FACTOR, 2), BILL_ELECTRICITY_FACTOR

    if bill_type == 'lpg':
        weight = _number(fields.get('cylinder_weight'), 'cylinder_weight') or BILL_DEFAULT_CYLINDER_KG
        return round(weight * BILL_LPG_FACTOR, 2), BILL_LPG_FACTOR

    amount = _number(fields.get('total_amount') or fields.get('amount'), 'total_amount')
    return round(amount * BILL_SPEND_FACTOR, 2), BILL_SPEND_FACTOR
