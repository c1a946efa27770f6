"""
Personalised reduction recommendations derived from a user's emission mix.
"""

import logging
from datetime import datetime, timezone

from models import db, Activity, Recommendation
from reports import activity_breakdown

logger = logging.getLogger('relief.recommendations')

CATEGORY_GROUPS = {
    'travel': 'transport',
    'transport': 'transport',
    'electricity': 'energy',
    'lpg': 'energy',
    'water': 'energy',
    'energy': 'energy',
    'food': 'food',
    'waste': 'waste',
    'shopping': 'waste',
}

LOW_ACTIVITY_COUNT = 10
TOP_N = 5


def analyze_emission_pattern(activities):
    pattern = {
        'transport_emissions': 0.0,
        'energy_emissions': 0.0,
        'food_emissions': 0.0,
        'waste_emissions': 0.0,
        'total_emissions': 0.0,
        'activity_count': len(activities),
    }
    for activity in activities:
        for category, amount in activity_breakdown(activity).items():
            amount = abs(amount)
            group = CATEGORY_GROUPS.get(category)
            if group:
                pattern[f'{group}_emissions'] += amount
            pattern['total_emissions'] += amount
    return pattern


def build_recommendations(pattern):
    """Candidate recommendations (dicts) for an emission pattern."""
    total = pattern['total_emissions']
    transport = pattern['transport_emissions']
    energy = pattern['energy_emissions']
    food = pattern['food_emissions']
    recs = []

    if total > 0 and transport > total * 0.4:
        share = round(transport / total * 100)
        recs.append(dict(
            title='Switch to Public Transit',
            description=f'Transportation accounts for {share}% of your emissions. '
                        'Try using public transit 2-3 times per week.',
            category='transport', priority=5, potential_impact=transport * 0.3,
            action_type='switch_transport'))
        recs.append(dict(
            title='Try Carpooling',
            description='Sharing rides can reduce your carbon footprint by up to 50% per trip.',
            category='transport', priority=4, potential_impact=transport * 0.25,
            action_type='carpool'))

    if total > 0 and energy > total * 0.3:
        recs.append(dict(
            title='Switch to LED Bulbs',
            description='Replace traditional bulbs with LED lights to save up to 75% energy.',
            category='energy', priority=4, potential_impact=energy * 0.15,
            action_type='switch_to_led'))
        recs.append(dict(
            title='Unplug Idle Devices',
            description='Electronics use energy even when off. Unplug chargers and appliances not in use.',
            category='energy', priority=3, potential_impact=energy * 0.1,
            action_type='unplug_devices'))

    if total > 0 and food > total * 0.25:
        recs.append(dict(
            title='Meatless Mondays',
            description='Going meat-free one day per week can save 7 kg of CO2 per month.',
            category='food', priority=5, potential_impact=7,
            action_type='reduce_meat'))
        recs.append(dict(
            title='Buy Local Produce',
            description='Locally sourced food reduces transportation emissions significantly.',
            category='food', priority=3, potential_impact=food * 0.2,
            action_type='buy_local'))

    if pattern['activity_count'] < LOW_ACTIVITY_COUNT:
        recs.append(dict(
            title='Start Tracking Daily',
            description='Log at least one eco-action per day to build awareness and earn rewards.',
            category='transport', priority=5, potential_impact=20,
            action_type='increase_tracking'))

    recs.append(dict(
        title='Bring Reusable Bags',
        description='Avoid single-use plastic bags by carrying reusable shopping bags.',
        category='waste', priority=3, potential_impact=2,
        action_type='reusable_bags'))
    return recs


def get_active_recommendations(user_id, limit=TOP_N):
    return (Recommendation.query
            .filter_by(user_id=user_id, status='active')
            .order_by(Recommendation.priority.desc(), Recommendation.potential_impact.desc())
            .limit(limit)
            .all())


def generate_recommendations(user_id):
    """Store any new recommendations and return the top active ones.

    An action type the user has already been given (in any status) is not
    suggested again.
    """
    activities = Activity.query.filter_by(user_id=user_id).all()
    pattern = analyze_emission_pattern(activities)

    seen = {row.action_type for row in Recommendation.query.filter_by(user_id=user_id)}
    added = 0
    for rec in build_recommendations(pattern):
        if rec['action_type'] in seen:
            continue
        db.session.add(Recommendation(user_id=user_id, status='active', **rec))
        seen.add(rec['action_type'])
        added += 1
    if added:
        db.session.commit()
        logger.info(f'Added {added} recommendations for {user_id}')

    return get_active_recommendations(user_id)


def _set_status(user_id, recommendation_id, status):
    rec = Recommendation.query.filter_by(id=recommendation_id, user_id=user_id).first()
    if not rec:
        return None
    rec.status = status
    if status == 'completed':
        rec.completed_at = datetime.now(timezone.utc)
    db.session.commit()
    return rec


def complete_recommendation(user_id, recommendation_id):
    return _set_status(user_id, recommendation_id, 'completed')


def dismiss_recommendation(user_id, recommendation_id):
    return _set_status(user_id, recommendation_id, 'dismissed')
