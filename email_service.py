"""
Transactional email through the Resend HTTP API.
Every send is best-effort: failures are logged and reported as False.
"""

import os
import logging
from datetime import datetime, timezone

import requests
from markupsafe import escape

logger = logging.getLogger('relief.email')

RESEND_API_URL = 'https://api.resend.com/emails'
DEFAULT_SENDER = 'ReLief Team <onboarding@resend.dev>'
DEFAULT_CONTACT_INBOX = 'reliefearth0@gmail.com'
PREVIEW_LENGTH = 60


def is_configured():
    return bool(os.environ.get('RESEND_API_KEY', '').strip())


def app_url(path=''):
    base = os.environ.get('APP_URL', 'http://localhost:5000').rstrip('/')
    return f'{base}{path}'


def send_email(to, subject, html, text=None, sender=None):
    """
    Send one email through Resend.

    Args:
        to: recipient address (or list of addresses)
        subject: subject line
        html: rendered HTML body
        text: optional plain-text body
        sender: optional From header, defaults to EMAIL_FROM

    Returns:
        True if Resend accepted the message, False otherwise
    """
    api_key = os.environ.get('RESEND_API_KEY', '').strip()
    if not api_key:
        logger.warning(f'Email "{subject}" not sent: RESEND_API_KEY is not set')
        return False
    if not to:
        return False

    payload = {
        'from': sender or os.environ.get('EMAIL_FROM', DEFAULT_SENDER),
        'to': to if isinstance(to, list) else [to],
        'subject': subject,
        'html': html,
    }
    if text:
        payload['text'] = text

    try:
        response = requests.post(
            RESEND_API_URL,
            json=payload,
            headers={'Authorization': f'Bearer {api_key}'},
            timeout=10,
        )
    except requests.RequestException as e:
        logger.error(f'Error sending email "{subject}": {e}')
        return False

    if response.status_code not in (200, 201):
        logger.error(f'Resend rejected "{subject}": {response.status_code} {response.text[:200]}')
        return False

    logger.info(f'Email sent: "{subject}"')
    return True


def send_batch(jobs):
    """Run a list of zero-argument send callables.

    One failing job never stops the rest.

    Returns:
        (sent, failed)
    """
    sent = failed = 0
    for job in jobs:
        try:
            ok = job()
        except Exception as e:
            logger.error(f'Batch email job failed: {e}')
            ok = False
        if ok:
            sent += 1
        else:
            failed += 1
    return sent, failed


def _preview(content):
    content = content or ''
    if len(content) > PREVIEW_LENGTH:
        return content[:PREVIEW_LENGTH] + '...'
    return content


def _button(label, path, color='#10b981'):
    return (
        f'<div style="text-align:center;margin:35px 0;">'
        f'<a href="{escape(app_url(path))}" style="background-color:{color};color:#ffffff;'
        f'text-decoration:none;padding:14px 32px;border-radius:8px;font-weight:600;">{label}</a></div>'
    )


def _card(inner, border='rgba(255,255,255,0.08)'):
    return (
        f'<div style="background-color:#1e293b;border-radius:12px;padding:24px;margin-bottom:24px;'
        f'border:1px solid {border};text-align:center;">{inner}</div>'
    )


def _value(text, color='#34d399', size=36):
    return f'<div style="font-size:{size}px;font-weight:800;color:{color};margin:10px 0;">{text}</div>'


def _label(text):
    return (
        f'<p style="margin:0;color:#9ca3af;text-transform:uppercase;font-size:12px;'
        f'font-weight:600;letter-spacing:1px;">{text}</p>'
    )


def render_base_template(title, content_html):
    """Wrap a content fragment in the shared dark ReLief layout."""
    year = datetime.now(timezone.utc).year
    return f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{escape(title)}</title>
</head>
<body style="margin:0;padding:0;background-color:#0f172a;color:#f3f4f6;font-family:-apple-system,'Segoe UI',Roboto,Helvetica,Arial,sans-serif;line-height:1.6;">
  <div style="padding:40px 20px;">
    <div style="max-width:600px;margin:0 auto;background-color:#1e293b;border-radius:16px;overflow:hidden;">
      <div style="background:linear-gradient(135deg,#059669 0%,#10b981 100%);padding:40px 20px;text-align:center;">
        <h1 style="margin:0;color:#ffffff;font-size:32px;font-weight:800;">ReLief</h1>
      </div>
      <div style="padding:40px 30px;">
        {content_html}
      </div>
      <div style="background-color:#0f172a;padding:30px 20px;text-align:center;">
        <p style="margin:0 0 10px 0;font-size:14px;color:#9ca3af;">Make a difference today.</p>
        <p style="margin-top:20px;font-size:12px;opacity:0.5;">&copy; {year} ReLief Community. All rights reserved.</p>
      </div>
    </div>
  </div>
</body>
</html>
"""


# --- Templates ---

def send_welcome_email(email, name):
    name = name or 'Eco Warrior'
    content = (
        f'<h2 style="color:#34d399;">Welcome to ReLief, {escape(name)}!</h2>'
        '<p>We\'re thrilled to have you join our community of eco-warriors taking real action for the planet.</p>'
        + _card('<h3 style="margin-top:0;">Your Journey Starts Here</h3>'
                '<p style="margin-bottom:0;">Calculate your carbon footprint, join challenges, and make a real impact.</p>')
        + _button('Go to Dashboard', '/dashboard')
        + '<p>Let\'s make a difference together!</p><p>Cheers,<br/>The ReLief Team</p>'
    )
    text = (
        f'Hi {name},\n\nWelcome to ReLief! We\'re thrilled to have you join our community.\n\n'
        'Start tracking your carbon footprint and join challenges today!\n\nCheers,\nThe ReLief Team'
    )
    return send_email(email, 'Welcome to the ReLief Community!',
                      render_base_template('Welcome to ReLief!', content), text=text)


def send_bill_processed_email(email, name, units, carbon_kg, category):
    name = escape(name or 'Eco Warrior')
    safe_category = escape(category)
    content = (
        '<h2 style="color:#34d399;">Bill Processed Successfully!</h2>'
        f'<p>Hi {name},</p>'
        f'<p>Our AI has successfully analyzed your recent <strong>{safe_category}</strong> bill. '
        'Here\'s your impact summary:</p>'
        + _card(_label('Usage Detected') + _value(f'{units} units', '#10b981', 24)
                + _label('Carbon Equivalent') + _value(f'{carbon_kg:.1f} kg CO&#8322;', '#f43f5e', 24))
        + _button('View Insights Dashboard', '/dashboard')
        + '<p><strong>Eco Tip:</strong> Try reducing phantom loads by unplugging appliances when not in use. '
          'It can cut energy bills by up to 10%!</p>'
    )
    return send_email(email, f'Your {category} bill was processed!',
                      render_base_template('Bill Processed', content))


def send_badge_email(email, name, badge_name, icon=None):
    name = escape(name or 'Eco Warrior')
    safe_badge = escape(badge_name)
    icon_html = f'<div style="font-size:60px;margin-bottom:15px;">{escape(icon) if icon else "&#127942;"}</div>'
    content = (
        f'<h2 style="color:#34d399;">Congratulations, {name}!</h2>'
        '<p>Your dedication to sustainability is paying off. You just unlocked a new badge!</p>'
        + _card(icon_html + _value(safe_badge, size=24)
                + '<p style="margin-bottom:0;color:#9ca3af;">Added to your profile showcase</p>')
        + _button('View Your Profile', '/profile')
        + '<p>Keep up the great work saving the planet.</p>'
    )
    return send_email(email, f'You unlocked the {badge_name} badge!',
                      render_base_template('Badge Unlocked!', content))


def send_carbon_alert_email(email, name, used_percentage):
    name = escape(name or 'Eco Warrior')
    content = (
        '<h2 style="color:#fbbf24;">Carbon Budget Alert</h2>'
        f'<p>Hi {name},</p>'
        f'<p>You have reached <strong>{used_percentage}%</strong> of your set monthly carbon budget.</p>'
        + _card(_value(f'{used_percentage}% Used', '#fbbf24')
                + '<p style="margin-bottom:0;color:#9ca3af;">Time to be mindful of your emissions!</p>',
                border='rgba(251,191,36,0.3)')
        + _button('View Dashboard', '/dashboard', color='#fbbf24')
        + '<p>Small changes today make a big difference tomorrow.</p>'
    )
    return send_email(email, f'Carbon Budget Alert: {used_percentage}% Reached',
                      render_base_template('Carbon Alert', content))


def send_monthly_report_email(email, name, month, emissions_kg, budget_kg):
    name = escape(name or 'Eco Warrior')
    color = '#34d399' if emissions_kg <= budget_kg else '#f43f5e'
    content = (
        f'<h2 style="color:#34d399;">Your {escape(month)} Carbon Report</h2>'
        f'<p>Hi {name}, here is your emission summary for the past month.</p>'
        + _card(_label('Total Emissions') + _value(f'{emissions_kg} kg CO&#8322;', color)
                + f'<p style="margin-bottom:0;color:#9ca3af;">Your budget was {budget_kg} kg CO&#8322;</p>')
        + _button('View Full Report', '/dashboard')
    )
    return send_email(email, f'Your {month} Carbon Report is Ready',
                      render_base_template(f'{month} Report', content))


def send_aqi_alert_email(email, name, location, aqi):
    name = escape(name or 'Eco Warrior')
    safe_location = escape(location)
    content = (
        '<h2 style="color:#ef4444;">Severe AQI Alert</h2>'
        f'<p>Hi {name},</p>'
        '<p>We are actively monitoring the air quality in your saved location.</p>'
        + _card(_value(f'{aqi} AQI', '#f43f5e')
                + f'<p style="margin-bottom:0;color:#9ca3af;">{safe_location} is currently experiencing '
                  'Hazardous air quality.</p>', border='rgba(244,63,94,0.3)')
        + '<p>Please take necessary precautions such as wearing an N95 mask if you must go outside, '
          'and keeping your windows closed.</p>'
        + _button('View AQI Map', '/aqi', color='#f43f5e')
    )
    return send_email(email, f'Alert: Air Quality in {location} is Hazardous ({aqi} AQI)',
                      render_base_template('AQI Alert', content))


def weekly_change_percent(this_week, last_week):
    if last_week > 0:
        return round((this_week - last_week) / last_week * 100)
    return 0


def send_weekly_digest_email(email, name, total_emissions, previous_emissions, percentile, tip):
    name = escape(name or 'Eco Warrior')
    change = weekly_change_percent(total_emissions, previous_emissions)
    improved = change <= 0
    change_color = '#10b981' if improved else '#f43f5e'
    arrow = '&darr;' if improved else '&uarr;'
    content = (
        '<h2 style="color:#34d399;">Weekly Impact Digest</h2>'
        f'<p>Hi {name}, here\'s how you changed the world this week.</p>'
        + _card(_label('Week\'s Footprint') + _value(f'{total_emissions} kg CO&#8322;', '#f3f4f6', 28)
                + f'<p style="margin-bottom:0;font-weight:500;color:{change_color};">'
                  f'{arrow} {abs(change)}% vs last week</p>')
        + f'<p style="color:#10b981;font-weight:bold;">You are in the top {percentile}% of eco-warriors this week!</p>'
        + '<div style="background:rgba(255,255,255,0.05);border-left:4px solid #10b981;padding:15px;border-radius:4px;">'
          '<p style="margin:0;"><strong>Your Weekly Tip:</strong></p>'
          f'<p style="margin-top:5px;margin-bottom:0;color:#9ca3af;">{escape(tip)}</p></div>'
        + _button('View Dashboard Data', '/dashboard')
    )
    return send_email(email, f'Your Weekly ReLief Digest: {total_emissions} kg CO2 tracked',
                      render_base_template('Weekly Digest', content))


INTERACTION_TEXT = {
    'like': 'liked your post',
    'comment': 'commented on your post',
    'reply': 'replied to you',
}


def send_community_interaction_email(email, recipient_name, actor_name, action_type, content_preview):
    if action_type not in INTERACTION_TEXT:
        raise ValueError(f'Unknown interaction type: {action_type}')
    action_text = INTERACTION_TEXT[action_type]
    recipient_name = escape(recipient_name or 'Eco Warrior')
    actor_name = actor_name or 'Someone'
    content = (
        '<h2 style="color:#34d399;">New Community Activity</h2>'
        f'<p>Hi {recipient_name},</p>'
        f'<p><strong>{escape(actor_name)}</strong> just {action_text}:</p>'
        '<div style="background:rgba(255,255,255,0.05);padding:15px;margin:20px 0;border-radius:8px;'
        f'font-style:italic;color:#d1d5db;border-left:2px solid #3b82f6;">"{escape(_preview(content_preview))}"</div>'
        + _button('View in Community', '/feed', color='#3b82f6')
    )
    return send_email(email, f'{actor_name} {action_text} on ReLief',
                      render_base_template('Community Activity', content))


def send_event_reminder_email(email, name, event_name, date_str, location):
    name = escape(name or 'Eco Warrior')

    content = (
        '<h2 style="color:#34d399;">Event Reminder</h2>'
        f'<p>Hi {name},</p>'
        '<p>This is a quick reminder that an eco-event you RSVP\'d to is happening tomorrow!</p>'
        + _card(_value(escape(event_name), '#10b981', 20)
                + f'<p><strong>When:</strong> {escape(date_str)}</p>'
                + f'<p style="margin:0;"><strong>Where:</strong> {escape(location or "TBA")}</p>',
                border='#10b981')
        + '<p>Thank you for showing up for your community and the planet.</p>'
        + _button('View Event Details', '/feed/events')
    )
    return send_email(email, f'Reminder: {event_name} is tomorrow!',
                      render_base_template('Event Reminder', content))


def send_activity_logged_email(email, name, activity_name, impact):
    name = escape(name or 'Eco Warrior')

    content = (
        '<h2 style="color:#34d399;">Activity Logged</h2>'
        f'<p>Hi {name},</p>'
        f'<p>You successfully logged a new activity: <strong>{escape(activity_name)}</strong>.</p>'
        + _card(_label('Carbon Impact') + _value(escape(impact), '#f3f4f6', 28), border='#10b981')
        + '<p>Every action counts towards a greener future. Keep up the great work!</p>'
        + _button('View Dashboard', '/dashboard')
    )
    return send_email(email, f'Activity Logged: {activity_name}',
                      render_base_template('Activity Logged', content))


def send_post_published_email(email, name, content_preview):
    name = escape(name or 'Eco Warrior')
    content = (
        '<h2 style="color:#34d399;">Post Published</h2>'
        f'<p>Hi {name},</p>'
        '<p>Your new post is now live in the ReLief Community!</p>'
        '<div style="background:rgba(255,255,255,0.05);padding:15px;margin:20px 0;border-radius:8px;'
        f'font-style:italic;color:#d1d5db;border-left:2px solid #10b981;">"{escape(_preview(content_preview))}"</div>'
        + _button('View Your Post', '/feed')
    )
    return send_email(email, 'Your post is live in the Community!',
                      render_base_template('Post Published', content))


def send_contact_email(full_name, email_address, subject, message):
    """Forward a contact form submission to the team inbox."""
    inbox = os.environ.get('CONTACT_INBOX', DEFAULT_CONTACT_INBOX)
    body = str(escape(message)).replace('\n', '<br />')
    content = (
        '<p style="color:#9ca3af;text-transform:uppercase;font-size:12px;">Sender Details</p>'
        f'<p><strong>Name:</strong> {escape(full_name)}</p>'
        f'<p><strong>Email:</strong> <a href="mailto:{escape(email_address)}" style="color:#10b981;">'
        f'{escape(email_address)}</a></p>'
        '<p style="color:#9ca3af;text-transform:uppercase;font-size:12px;">Inquiry Subject</p>'
        f'<p style="color:#10b981;font-weight:600;">{escape(subject.upper())}</p>'
        '<p style="color:#9ca3af;text-transform:uppercase;font-size:12px;">Message</p>'
        f'<div style="background-color:#0f172a;padding:20px;border-radius:12px;color:#cbd5e1;">{body}</div>'
    )
    return send_email(inbox, f'New Contact Request: {subject}',
                      render_base_template('New Contact Request', content),
                      sender='ReLief Contact Form <onboarding@resend.dev>')
