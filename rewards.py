"""
Karma Points rewards store.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError

from models import db, Reward, UserReward
from profiles import spend_points

logger = logging.getLogger('relief.rewards')


class RewardError(Exception):
    """A purchase or redemption that cannot go ahead."""

    def __init__(self, message, status=400):
        super().__init__(message)
        self.message = message
        self.status = status


def reward_status(reward, owned, balance):
    """Owned / Redeemed for rewards the user has, else Claimable or Locked."""
    if owned:
        return 'Redeemed' if owned.status == 'Redeemed' else 'Owned'
    if reward.is_purchasable and (balance or 0) >= reward.cost:
        return 'Claimable'
    return 'Locked'


def list_rewards(profile):
    """Every reward with the user's status, cheapest first, plus tab counts."""
    owned = {ur.reward_id: ur for ur in UserReward.query.filter_by(user_id=profile.id)}
    items = []
    counts = {'collected': 0, 'claimable': 0, 'redeemed': 0}
    for reward in Reward.query.order_by(Reward.cost.asc(), Reward.id.asc()).all():
        status = reward_status(reward, owned.get(reward.id), profile.balance)
        if status in ('Owned', 'Redeemed'):
            counts['collected'] += 1
        if status == 'Redeemed':
            counts['redeemed'] += 1
        if status == 'Claimable':
            counts['claimable'] += 1
        items.append({
            'id': reward.id,
            'title': reward.title,
            'description': reward.description,
            'cost': reward.cost,
            'type': reward.type,
            'rarity': reward.rarity,
            'is_purchasable': bool(reward.is_purchasable),
            'status': status,
        })
    return {'rewards': items, 'stats': counts, 'balance': profile.balance or 0}


def purchase_reward(profile, reward_id):
    """Spend points on a reward; the deduction and ownership row commit together.

    Raises:
        RewardError: unknown reward (404), not for sale (400) or already owned (409)
        InsufficientPointsError: balance lower than the cost
    """
    reward = db.session.get(Reward, reward_id)
    if not reward:
        raise RewardError('Reward not found', 404)
    if not reward.is_purchasable:
        raise RewardError('This reward cannot be purchased')
    if UserReward.query.filter_by(user_id=profile.id, reward_id=reward.id).first():
        raise RewardError('You already own this reward', 409)

    spend_points(profile, reward.cost, f'Purchased: {reward.title}')
    owned = UserReward(user_id=profile.id, reward_id=reward.id, status='Unlocked')
    db.session.add(owned)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise RewardError('You already own this reward', 409)

    logger.info(f'{profile.id} purchased reward {reward.id} for {reward.cost} KP')
    return owned


def redeem_reward(user_id, reward_id):
    """Mark an owned reward as Redeemed."""
    owned = UserReward.query.filter_by(user_id=user_id, reward_id=reward_id).first()
    if not owned:
        raise RewardError('You do not own this reward', 404)
    if owned.status == 'Redeemed':
        raise RewardError('Reward already redeemed', 409)
    owned.status = 'Redeemed'
    owned.redeemed_at = datetime.now(timezone.utc)
    db.session.commit()
    return owned
