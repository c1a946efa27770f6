"""HTTP tests for the JSON API."""

import io
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import IntegrityError

import app as app_module
from assistant import AssistantError
from models import db, Activity, Bill, CommunityEvent, EventAttendee, PointsHistory, Profile

PNG_BYTES = b'\x89PNG\r\n\x1a\n' + b'\x00' * 64

DAILY_LOG = {
    'trips': [{'mode': 'car', 'distance': 10}],
    'electricity_usage': 'low',
    'water_usage': 'typical',
    'meals': 3,
    'meal_type': 'vegetarian',
}


@pytest.fixture
def outbox(monkeypatch):
    """Capture emails sent directly by the views."""
    sent = []

    def recorder(name):
        def record(*args):
            sent.append((name, args))
            return True
        return record

    for name in ('send_activity_logged_email', 'send_bill_processed_email', 'send_carbon_alert_email',
                 'send_monthly_report_email', 'send_weekly_digest_email', 'send_event_reminder_email',
                 'send_contact_email', 'send_aqi_alert_email'):
        monkeypatch.setattr(app_module, name, recorder(name))
    return sent


def sign_in(client, profile):
    with client.session_transaction() as sess:
        sess['user_id'] = profile.id
        sess['email'] = profile.email
        sess['timezone'] = 'UTC'


class TestAuth:
    """Session handling and the profile endpoints"""

    @pytest.mark.parametrize('method, path', [
        ('get', '/api/me'),
        ('post', '/api/calculator/daily-log'),
        ('get', '/api/badges'),
        ('get', '/api/rewards'),
        ('post', '/api/ai/chat'),
        ('get', '/api/export/csv'),
    ])
    def test_requires_login(self, client, app, method, path):
        response = getattr(client, method)(path)
        assert response.status_code == 401
        assert response.get_json() == {'error': 'Unauthorized'}

    def test_me(self, auth_client, profile):
        data = auth_client.get('/api/me').get_json()
        assert data['id'] == profile.id
        assert data['is_admin'] is False
        assert data['monthly_budget'] == 500

    def test_login_without_clerk(self, client, app):
        assert client.get('/auth/login').status_code == 503

    def test_stale_session_is_cleared(self, client, app):
        with client.session_transaction() as sess:
            sess['user_id'] = 'user_deleted'
        assert client.get('/api/me').status_code == 401
        with client.session_transaction() as sess:
            assert 'user_id' not in sess

    def test_update_profile(self, auth_client, profile):
        response = auth_client.patch('/api/profile', json={'username': 'Asha', 'timezone': 'Not/AZone'})
        assert response.status_code == 200
        assert profile.username == 'Asha'
        assert profile.timezone == 'UTC'
        assert auth_client.patch('/api/profile', json={'username': '  '}).status_code == 400

    def test_logout(self, auth_client):
        auth_client.post('/auth/logout')
        assert auth_client.get('/api/me').status_code == 401

    def test_security_headers(self, auth_client):
        response = auth_client.get('/api/me')
        assert response.headers['X-Content-Type-Options'] == 'nosniff'
        assert response.headers['Cache-Control'] == 'no-store'

    def test_unknown_route_is_json(self, client, app):
        response = client.get('/api/nothing-here')
        assert response.status_code == 404
        assert response.get_json() == {'error': 'Not found'}


class TestCalculatorRoutes:
    """Estimates, daily logs, onboarding and budgets"""

    def test_estimate_weekly(self, auth_client):
        data = auth_client.post('/api/calculator/estimate', json={'travel_km': 50}).get_json()
        assert data['baseline'] == pytest.approx(113.82)
        assert data['savings'] == pytest.approx(113.82 - data['total'], abs=0.01)

    def test_estimate_rejects_bad_input(self, auth_client):
        response = auth_client.post('/api/calculator/estimate', json={'renewable_percent': 300})
        assert response.status_code == 400

    def test_daily_log_once_per_day(self, auth_client, profile, outbox):
        response = auth_client.post('/api/calculator/daily-log', json=DAILY_LOG)
        assert response.status_code == 201
        data = response.get_json()
        assert data['result']['total'] == pytest.approx(4.28)
        assert data['karma_earned'] == 20
        assert data['streak']['current_streak'] == 1
        assert 'solar-seedling' in [b['id'] for b in data['new_badges']]

        activity = Activity.query.filter_by(user_id=profile.id).one()
        assert activity.category == 'daily_log'
        assert activity.details['breakdown']['travel'] == pytest.approx(1.92)
        reasons = [p.reason for p in PointsHistory.query.filter_by(user_id=profile.id)]
        assert 'Daily Carbon Log' in reasons
        assert outbox[0][0] == 'send_activity_logged_email'

        again = auth_client.post('/api/calculator/daily-log', json=DAILY_LOG)
        assert again.status_code == 409
        assert Activity.query.filter_by(user_id=profile.id).count() == 1

    def test_daily_log_invalid(self, auth_client, profile):
        response = auth_client.post('/api/calculator/daily-log', json={'trips': [{'mode': 'rocket'}]})
        assert response.status_code == 400
        assert Activity.query.filter_by(user_id=profile.id).count() == 0

    def test_daily_log_rejects_infinite_distance(self, auth_client, profile):
        before = profile.carbon_total
        response = auth_client.post('/api/calculator/daily-log',
                                    data='{"trips": [{"mode": "car", "distance": 1e999}], "meals": 0}',
                                    content_type='application/json')
        assert response.status_code == 400
        assert Activity.query.filter_by(user_id=profile.id).count() == 0
        assert profile.carbon_total == before

    @pytest.mark.parametrize('url, body', [
        ('/api/calculator/estimate', {'mode': 'daily', 'trips': ['car'], 'meals': 0}),
        ('/api/calculator/estimate', {'mode': 'daily', 'appliances': [['ac']]}),
        ('/api/calculator/daily-log', {'trips': {'mode': 'car', 'distance': 5}}),
        ('/api/calculator/daily-log', {'electricity_usage': ['low']}),
        ('/api/onboarding', {'transport': {'flights': ['short']}}),
    ])
    def test_malformed_shapes_are_bad_requests(self, auth_client, profile, url, body):
        assert auth_client.post(url, json=body).status_code == 400

    def test_one_daily_log_row_per_day(self, profile):
        today = datetime.now(timezone.utc).date()
        db.session.add(Activity(user_id=profile.id, type='calculator', category='daily_log', impact=1,
                                log_date=today))
        db.session.add(Activity(user_id=profile.id, type='bill_upload', category='electricity', impact=2,
                                log_date=today))
        db.session.commit()

        db.session.add(Activity(user_id=profile.id, type='calculator', category='daily_log', impact=3,
                                log_date=today))
        with pytest.raises(IntegrityError):
            db.session.commit()
        db.session.rollback()

    def test_concurrent_daily_log_conflicts(self, auth_client, profile, outbox, monkeypatch):
        calculate = app_module.calculate_daily_log_emissions

        def saved_elsewhere_first(data, diet):
            # Another request inserts today's log between the check and the insert
            db.session.add(Activity(user_id=profile.id, type='calculator', category='daily_log', impact=1,
                                    log_date=datetime.now(timezone.utc).date()))
            db.session.commit()
            return calculate(data, diet)

        monkeypatch.setattr(app_module, 'calculate_daily_log_emissions', saved_elsewhere_first)
        response = auth_client.post('/api/calculator/daily-log', json=DAILY_LOG)

        assert response.status_code == 409
        assert Activity.query.filter_by(user_id=profile.id).count() == 1
        assert db.session.get(Profile, profile.id).balance == 0
        assert PointsHistory.query.filter_by(user_id=profile.id).count() == 0

    def test_budget_alert_on_crossing(self, auth_client, profile, outbox):
        auth_client.put('/api/budget', json={'monthly_limit': 5})
        data = auth_client.post('/api/calculator/daily-log', json=DAILY_LOG).get_json()
        assert data['budget_alert'] == 80
        assert ('send_carbon_alert_email', ('test@example.com', 'Tester', 86)) in outbox

    def test_onboarding_sets_budget(self, auth_client, profile):
        data = auth_client.post('/api/onboarding', json={}).get_json()
        assert data['daily_total'] == pytest.approx(5.63)
        assert data['monthly_budget'] == pytest.approx(154.12)
        assert profile.onboarding_completed
        assert auth_client.get('/api/budget').get_json()['monthly_limit'] == pytest.approx(154.12)

    def test_budget_validation(self, auth_client):
        assert auth_client.put('/api/budget', json={'monthly_limit': 'lots'}).status_code == 400
        assert auth_client.put('/api/budget', json={'monthly_limit': -1}).status_code == 400


class TestBillRoutes:
    """Bill scanning and saving"""

    def test_scan(self, auth_client, monkeypatch):
        monkeypatch.setattr(app_module, 'scan_bill', lambda data, mime, hint: {
            'success': True, 'bill_type': 'electricity', 'fields': {'units_consumed': 100},
            'confidence': 0.9, 'message': 'ok'})
        response = auth_client.post('/api/ai/scan', data={'file': (io.BytesIO(PNG_BYTES), 'bill.png')},
                                    content_type='multipart/form-data')
        assert response.status_code == 200
        data = response.get_json()
        assert data['bill_type'] == 'electricity'
        assert data['carbon_emissions'] == pytest.approx(82.0)
        assert data['image_url'] is None

    def test_scan_rejects_non_image(self, auth_client):
        response = auth_client.post('/api/ai/scan', data={'file': (io.BytesIO(b'%PDF-1.4'), 'bill.png')},
                                    content_type='multipart/form-data')
        assert response.status_code == 400

    def test_scan_failure(self, auth_client, monkeypatch):
        monkeypatch.setattr(app_module, 'scan_bill', lambda *args: {
            'success': False, 'bill_type': 'unknown', 'fields': {}, 'confidence': 0, 'message': 'unreadable'})
        response = auth_client.post('/api/ai/scan', data={'file': (io.BytesIO(PNG_BYTES), 'bill.png')},
                                    content_type='multipart/form-data')
        assert response.status_code == 500
        assert response.get_json()['error'] == 'unreadable'

    def test_electricity_bill_once_per_month(self, auth_client, profile, outbox):
        body = {'bill_type': 'electricity', 'extracted_data': {'units_consumed': 100, 'provider': 'MSEB'},
                'confidence': 0.95}
        response = auth_client.post('/api/bills', json=body)
        assert response.status_code == 201
        assert response.get_json()['karma_earned'] == 30
        bill = Bill.query.filter_by(user_id=profile.id).one()
        assert bill.carbon_emissions == pytest.approx(82.0)
        assert bill.provider == 'MSEB'
        assert any(name == 'send_bill_processed_email' for name, _ in outbox)

        assert auth_client.post('/api/bills', json=body).status_code == 409
        assert len(auth_client.get('/api/bills').get_json()) == 1

    def test_shopping_bills_not_limited(self, auth_client, outbox):
        body = {'bill_type': 'shopping', 'extracted_data': {'total_amount': 1000}}
        assert auth_client.post('/api/bills', json=body).status_code == 201
        assert auth_client.post('/api/bills', json=body).status_code == 201

    def test_bill_type_required(self, auth_client):
        assert auth_client.post('/api/bills', json={'extracted_data': {}}).status_code == 400


class TestChatRoute:
    """AI chat"""

    def test_reply(self, auth_client, monkeypatch):
        monkeypatch.setattr(app_module, 'chat', lambda message, history: f'echo: {message}')
        response = auth_client.post('/api/ai/chat', json={'message': ' hi ', 'previousMessages': []})
        assert response.get_json() == {'reply': 'echo: hi'}

    def test_quota(self, auth_client, monkeypatch):
        def exhausted(message, history):
            raise AssistantError('AI chat quota exceeded. Please try again later.', status=429)
        monkeypatch.setattr(app_module, 'chat', exhausted)
        assert auth_client.post('/api/ai/chat', json={'message': 'hi'}).status_code == 429

    def test_message_required(self, auth_client):
        assert auth_client.post('/api/ai/chat', json={}).status_code == 400


class TestGamificationRoutes:
    """Streaks, badges, points and rewards"""

    def test_check_in_and_calendar(self, auth_client):
        assert auth_client.post('/api/streak/check-in').get_json()['current_streak'] == 1
        today = datetime.now(timezone.utc).date()
        data = auth_client.get(f'/api/streak?year={today.year}&month={today.month}').get_json()
        assert data['login_days'] == [today.day]

    def test_badges_listing(self, auth_client):
        data = auth_client.get('/api/badges?category=streak').get_json()
        assert data['total_count'] == 14
        assert {b['id'] for b in data['badges']} == {'streak-starter', 'daily-devotee'}
        assert all(b['earned'] is False for b in data['badges'])
        assert data['badges'][0]['progress_text'].endswith('days')

    def test_purchase_needs_points(self, auth_client, profile):
        response = auth_client.post('/api/rewards/1/purchase')
        assert response.status_code == 402
        assert response.get_json() == {'error': 'Not enough Karma Points', 'balance': 0, 'cost': 150}

    def test_purchase_and_redeem(self, auth_client, profile):
        profile.balance = 200
        db.session.commit()
        response = auth_client.post('/api/rewards/1/purchase')
        assert response.status_code == 200
        assert response.get_json()['balance'] == 50
        assert auth_client.post('/api/rewards/1/purchase').status_code == 409
        assert auth_client.post('/api/rewards/1/redeem').get_json()['status'] == 'Redeemed'
        history = auth_client.get('/api/points/history').get_json()
        assert history[0]['amount'] == -150


class TestCommunityRoutes:
    """Community endpoints"""

    def test_post_like_comment(self, auth_client, make_profile, client):
        response = auth_client.post('/api/posts', json={'content': 'Switched to a bike'})
        assert response.status_code == 201
        post_id = response.get_json()['id']

        assert auth_client.post(f'/api/posts/{post_id}/like').get_json() == {'liked': True, 'likes_count': 1}
        comment = auth_client.post(f'/api/posts/{post_id}/comments', json={'content': 'Nice'})
        assert comment.status_code == 201
        assert len(auth_client.get(f'/api/posts/{post_id}/comments').get_json()) == 1

        other = make_profile('user_bea', email='bea@example.com', username='Bea')
        sign_in(client, other)
        assert client.delete(f'/api/posts/{post_id}').status_code == 403

    def test_empty_post(self, auth_client):
        response = auth_client.post('/api/posts', json={'content': '   '})
        assert response.status_code == 400
        assert response.get_json()['error'] == 'Post cannot be empty.'

    def test_post_image_without_cloudinary(self, auth_client):
        response = auth_client.post('/api/posts', data={'content': 'Look', 'image': (io.BytesIO(PNG_BYTES), 'a.png')},
                                    content_type='multipart/form-data')
        assert response.status_code == 503

    def test_group_flow(self, auth_client):
        group = auth_client.post('/api/groups', json={'name': 'Cyclists'}).get_json()
        assert group['member_count'] == 1
        assert auth_client.post(f'/api/groups/{group["id"]}/join').status_code == 409
        sent = auth_client.post(f'/api/groups/{group["id"]}/messages', json={'content': 'Hello'})
        assert sent.status_code == 201
        assert auth_client.get('/api/groups/999/members').status_code == 404

    def test_events(self, auth_client):
        created = auth_client.post('/api/events', json={'title': 'Tree planting', 'date': '2099-04-01T09:00:00Z'})
        assert created.status_code == 201
        event_id = created.get_json()['id']
        assert auth_client.post(f'/api/events/{event_id}/rsvp').get_json() == {'attending': True,
                                                                              'attendee_count': 1}
        assert len(auth_client.get('/api/events').get_json()) == 1
        bad = auth_client.post('/api/events', json={'title': 'Oops', 'date': 'soon'})
        assert bad.status_code == 400

    def test_leaderboard(self, auth_client, make_profile):
        make_profile('user_top', email='top@example.com', username='Top', balance=900)
        board = auth_client.get('/api/leaderboard?metric=balance').get_json()
        assert board[0]['id'] == 'user_top'
        assert auth_client.get('/api/leaderboard?metric=height').status_code == 400


class TestReportRoutes:
    """Reports, exports, certificates and recommendations"""

    def test_summary(self, auth_client):
        data = auth_client.get('/api/reports/summary').get_json()
        assert len(data['daily_totals']) == 7

    def test_csv_export(self, auth_client, outbox):
        auth_client.post('/api/calculator/daily-log', json=DAILY_LOG)
        response = auth_client.get('/api/export/csv')
        assert response.mimetype == 'text/csv'
        lines = response.data.decode('utf-8').splitlines()
        assert lines[0] == 'Date,Category,Activity,CO2 Amount (kg),Notes'
        assert len(lines) == 2

        summary = auth_client.get('/api/export/csv?type=summary').data.decode('utf-8')
        assert summary.splitlines()[-1].startswith('TOTAL,4.28,')

    def test_pdf_and_certificate(self, auth_client):
        assert auth_client.get('/api/export/pdf').data.startswith(b'%PDF')
        assert auth_client.get('/api/certificate').data.startswith(b'\x89PNG')

    def test_recommendations(self, auth_client):
        recs = auth_client.get('/api/recommendations').get_json()
        assert recs
        rec_id = recs[0]['id']
        assert auth_client.post(f'/api/recommendations/{rec_id}/dismiss').get_json()['status'] == 'dismissed'
        assert auth_client.post(f'/api/recommendations/{rec_id}/archive').status_code == 404


class TestMiscRoutes:
    """Users batch, AQI alerts and the contact form"""

    def test_users_batch(self, auth_client, monkeypatch):
        monkeypatch.setattr(app_module, 'get_users_batch', lambda ids: [{'id': i} for i in ids])
        assert auth_client.post('/api/users/batch', json={'userIds': ['a', 'b']}).get_json() == [
            {'id': 'a'}, {'id': 'b'}]
        assert auth_client.post('/api/users/batch', json={'userIds': 'a'}).status_code == 400
        assert auth_client.post('/api/users/batch', json={'userIds': ['x'] * 101}).status_code == 400

    def test_aqi_alert(self, auth_client, outbox):
        response = auth_client.post('/api/alerts/aqi', json={'location': 'Delhi', 'aqi': '320'})
        assert response.status_code == 200
        assert outbox == [('send_aqi_alert_email', ('test@example.com', 'Tester', 'Delhi', 320))]
        assert auth_client.post('/api/alerts/aqi', json={'aqi': 320}).status_code == 400

    def test_contact_requires_email_service(self, client, app):
        body = {'fullName': 'Asha', 'emailAddress': 'a@example.com', 'subject': 'Hi', 'message': 'Hello'}
        assert client.post('/api/contact', json=body).status_code == 503

    def test_contact(self, client, app, monkeypatch, outbox):
        monkeypatch.setenv('RESEND_API_KEY', 're_test')
        body = {'fullName': 'Asha', 'emailAddress': 'a@example.com', 'subject': 'Hi', 'message': 'Hello'}
        assert client.post('/api/contact', json=body).get_json() == {'success': True}
        assert client.post('/api/contact', json={'fullName': 'Asha'}).status_code == 400


class TestCronRoutes:
    """Scheduled jobs"""

    def test_requires_secret(self, client, app, monkeypatch):
        assert client.post('/api/cron/carbon-report').status_code == 401
        monkeypatch.setenv('CRON_SECRET', 's3cret')
        assert client.post('/api/cron/carbon-report', headers={'Authorization': 'Bearer wrong'}).status_code == 401

    def test_carbon_report(self, client, profile, monkeypatch, outbox):
        monkeypatch.setenv('CRON_SECRET', 's3cret')
        data = client.post('/api/cron/carbon-report', headers={'Authorization': 'Bearer s3cret'}).get_json()
        assert data['sent'] == 1
        name, args = outbox[0]
        assert name == 'send_monthly_report_email'
        assert args[0] == 'test@example.com'
        assert args[-1] == 300

    def test_weekly_digest(self, client, profile, add_activity, monkeypatch, outbox):
        monkeypatch.setenv('CRON_SECRET', 's3cret')
        add_activity(profile.id, datetime.now(timezone.utc).date(), 12.5)
        data = client.post('/api/cron/weekly-digest', headers={'Authorization': 'Bearer s3cret'}).get_json()
        assert data['sent'] == 1
        _, args = outbox[0]
        assert args[:5] == ('test@example.com', 'Tester', 12.5, 0, 100)

    def test_event_reminders(self, client, profile, monkeypatch, outbox):
        monkeypatch.setenv('CRON_SECRET', 's3cret')
        now = datetime.now(timezone.utc)
        tomorrow = datetime(now.year, now.month, now.day, 10) + timedelta(days=1)
        event = CommunityEvent(title='River clean-up', date=tomorrow, organizer_id=profile.id)
        db.session.add(event)
        db.session.flush()
        db.session.add(EventAttendee(event_id=event.id, user_id=profile.id))
        db.session.commit()

        data = client.post('/api/cron/event-reminders', headers={'Authorization': 'Bearer s3cret'}).get_json()

        assert data['sent'] == 1
        name, args = outbox[0]
        assert name == 'send_event_reminder_email'
        assert args[2] == 'River clean-up'


class TestAdminRoutes:
    """Admin endpoints"""

    def test_forbidden_for_regular_users(self, auth_client):
        assert auth_client.get('/api/admin/stats').status_code == 403

    def test_stats_and_delete_user(self, auth_client, make_profile, monkeypatch):
        monkeypatch.setenv('ADMIN_EMAILS', 'someone@example.com, test@example.com')
        make_profile('user_gone', email='gone@example.com')

        stats = auth_client.get('/api/admin/stats').get_json()
        assert stats['stats']['users'] == 2

        assert auth_client.delete('/api/admin/users/user_gone').get_json() == {'success': True}
        assert db.session.get(Profile, 'user_gone') is None
        assert auth_client.delete('/api/admin/users/user_gone').status_code == 404
