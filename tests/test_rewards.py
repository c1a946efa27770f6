"""Tests for the Karma Points rewards store."""

from types import SimpleNamespace

import pytest

from badges import get_user_stats
from models import PointsHistory, Reward
from profiles import InsufficientPointsError
from rewards import RewardError, list_rewards, purchase_reward, redeem_reward, reward_status


def reward_named(title):
    return Reward.query.filter_by(title=title).one()


class TestRewardStatus:
    """reward_status"""

    def test_status_rules(self):
        reward = SimpleNamespace(cost=150, is_purchasable=True)
        assert reward_status(reward, None, 200) == 'Claimable'
        assert reward_status(reward, None, 100) == 'Locked'
        assert reward_status(reward, SimpleNamespace(status='Unlocked'), 0) == 'Owned'
        assert reward_status(reward, SimpleNamespace(status='Redeemed'), 0) == 'Redeemed'

    def test_not_purchasable_is_locked(self):
        reward = SimpleNamespace(cost=10, is_purchasable=False)
        assert reward_status(reward, None, 1000) == 'Locked'


class TestPurchase:
    """purchase_reward and redeem_reward"""

    def test_purchase_deducts_points(self, make_profile):
        user = make_profile(balance=200)
        border = reward_named('Green Profile Border')

        purchase_reward(user, border.id)

        assert user.balance == 50
        ledger = PointsHistory.query.filter_by(user_id=user.id).one()
        assert ledger.amount == -150
        assert ledger.reason == 'Purchased: Green Profile Border'
        statuses = {r['title']: r['status'] for r in list_rewards(user)['rewards']}
        assert statuses['Green Profile Border'] == 'Owned'

    def test_insufficient_points(self, make_profile):
        user = make_profile(balance=100)
        with pytest.raises(InsufficientPointsError):
            purchase_reward(user, reward_named('Green Profile Border').id)
        assert user.balance == 100
        assert PointsHistory.query.count() == 0

    def test_cannot_buy_twice(self, make_profile):
        user = make_profile(balance=400)
        border = reward_named('Green Profile Border')
        purchase_reward(user, border.id)

        with pytest.raises(RewardError) as excinfo:
            purchase_reward(user, border.id)

        assert excinfo.value.status == 409
        assert user.balance == 250

    def test_unknown_reward(self, profile):
        with pytest.raises(RewardError) as excinfo:
            purchase_reward(profile, 9999)
        assert excinfo.value.status == 404

    def test_redeem(self, make_profile):
        user = make_profile(balance=300)
        border = reward_named('Green Profile Border')
        purchase_reward(user, border.id)

        owned = redeem_reward(user.id, border.id)

        assert owned.status == 'Redeemed'
        assert owned.redeemed_at is not None
        with pytest.raises(RewardError) as excinfo:
            redeem_reward(user.id, border.id)
        assert excinfo.value.status == 409

    def test_redeem_requires_ownership(self, profile):
        with pytest.raises(RewardError) as excinfo:
            redeem_reward(profile.id, reward_named('Streak Revive').id)
        assert excinfo.value.status == 404

    def test_tree_donation_counts_as_planted_tree(self, make_profile):
        user = make_profile(balance=500)
        purchase_reward(user, reward_named('Plant a Real Tree').id)
        assert get_user_stats(user.id)['trees_planted_virtual'] == 1


class TestListing:
    """list_rewards"""

    def test_cheapest_first_with_counts(self, make_profile):
        user = make_profile(balance=250)
        listing = list_rewards(user)
        costs = [r['cost'] for r in listing['rewards']]
        assert costs == sorted(costs)
        assert listing['stats'] == {'collected': 0, 'claimable': 2, 'redeemed': 0}
        assert listing['balance'] == 250
