"""
Clerk Backend API client.
Looks up public user details (name, avatar) for ids stored on our rows.
"""

import os
import logging

import requests

logger = logging.getLogger('relief.clerk')

CLERK_API_URL = 'https://api.clerk.com/v1'


class ClerkError(Exception):
    pass


def _secret_key():
    return os.environ.get('CLERK_SECRET_KEY', '').strip()


def is_configured():
    return bool(_secret_key())


def placeholder_user(user_id):
    return {
        'id': user_id,
        'username': 'User',
        'first_name': None,
        'last_name': None,
        'image_url': None,
    }


def primary_email(user_data):
    """Primary email address from a raw Clerk user object."""
    addresses = user_data.get('email_addresses') or []
    primary_id = user_data.get('primary_email_address_id')
    for address in addresses:
        if address.get('id') == primary_id:
            return address.get('email_address')
    return addresses[0].get('email_address') if addresses else None


def fetch_user(user_id):
    """
    Fetch the raw Clerk user object.

    Raises:
        ClerkError: when the key is missing or the API call fails
    """
    secret = _secret_key()
    if not secret:
        raise ClerkError('CLERK_SECRET_KEY is not set')
    try:
        response = requests.get(
            f'{CLERK_API_URL}/users/{user_id}',
            headers={'Authorization': f'Bearer {secret}'},
            timeout=10,
        )
    except requests.RequestException as e:
        raise ClerkError(str(e)) from e
    if response.status_code != 200:
        raise ClerkError(f'Clerk returned {response.status_code} for {user_id}')
    return response.json()


def get_user(user_id):
    """Public summary of a Clerk user."""
    data = fetch_user(user_id)
    return {
        'id': data.get('id', user_id),
        'username': data.get('username') or data.get('first_name') or 'User',
        'first_name': data.get('first_name'),
        'last_name': data.get('last_name'),
        'image_url': data.get('image_url'),
    }


def get_users_batch(user_ids):
    """Summaries for several users; a failed lookup yields a placeholder."""
    users = []
    for user_id in user_ids:
        try:
            users.append(get_user(user_id))
        except ClerkError as e:
            logger.error(f'Error fetching user {user_id}: {e}')
            users.append(placeholder_user(user_id))
    return users
