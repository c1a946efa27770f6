"""
ReLief AI assistant: a Gemini chat session primed with a platform knowledge base.
"""

import logging

from gemini_helper import get_model, GeminiNotConfigured

logger = logging.getLogger('relief.assistant')

KNOWLEDGE_BASE = """
ReLief is an eco-platform that helps users track, reduce, and heal their carbon footprint.

== PAGES & FEATURES ==

1. Carbon Calculator (/calculator)
   - Daily log: trips (distance x mode factor, e.g. car 0.192, bus 0.089, train 0.041 kg CO2/km),
     electricity usage level (low 2 / typical 5 / high 12 kWh at 0.475 kg CO2/kWh) plus appliances,
     water usage level, meals and diet.
   - One daily log per day earns 20 Karma Points.

2. AI Bill Scanner (/scanner)
   - Upload electricity, LPG or shopping bills (English, Hindi or Marathi).
   - AI extracts kWh consumption, cylinder weight or bill amount.
   - Electricity: 0.82 kg CO2/kWh. LPG: 2.98 kg CO2 per kg. Shopping: 0.005 kg CO2 per rupee.
   - Saving a bill earns 30 Karma Points; one electricity and one LPG bill per month.

3. Emission History (/history)
   - Full log of carbon activity. Export as CSV or PDF report.

4. Dashboard (/dashboard)
   - Total footprint, monthly carbon budget, Karma Points balance and recent activity.

5. Karma Points & Rewards (/rewards)
   - Earn KP for logging activities, scanning bills and unlocking badges.
   - Spend KP to unlock rewards; owned rewards can be redeemed.

6. Badges (/badges)
   - Earned for milestones such as first activity, first bill scan, 3 and 7 day streaks,
     carbon saved and joining community groups.

7. Login Streak (on /profile)
   - Log in daily to maintain a streak. A missed day resets it.

8. Leaderboard (/leaderboard)
   - Rank by Karma Points, carbon savings or streak.

9. Community (/feed)
   - Posts, groups with group chat, events with RSVP, success stories and eco tips.

10. Certificate (/certificate)
    - Download an achievement certificate with your carbon saved and badges.
"""

SYSTEM_PROMPT = f"""
You are the "ReLief AI Assistant", an intelligent eco-conscious guide.
You have complete knowledge of the ReLief platform.

KNOWLEDGE BASE:
{KNOWLEDGE_BASE}

Instructions:
- Use the KNOWLEDGE BASE to answer platform-specific questions accurately.
- Answer general sustainability questions using your general intelligence.
- Be professional, encouraging, and use markdown.
- If asked about "Gemini", acknowledge you are powered by it.
- Never mention your technical limitations. Simply provide the best answer possible.
"""

PRIMING_REPLY = ('I am the ReLief AI Assistant. I am ready to guide users through the platform '
                 'and provide sustainability expertise.')

QUOTA_MARKERS = ('429', 'quota exceeded', 'too many requests')


class AssistantError(Exception):
    def __init__(self, message, status=500):
        super().__init__(message)
        self.message = message
        self.status = status


def build_history(previous_messages):
    history = [
        {'role': 'user', 'parts': [SYSTEM_PROMPT]},
        {'role': 'model', 'parts': [PRIMING_REPLY]},
    ]
    for msg in previous_messages or []:
        content = msg.get('content')
        if not content:
            continue
        role = 'user' if msg.get('role') == 'user' else 'model'
        history.append({'role': role, 'parts': [content]})
    return history


def chat(message, previous_messages=None):
    """
    Answer one chat message.

    Args:
        message: the user's message
        previous_messages: earlier turns as [{role, content}]

    Returns:
        reply text

    Raises:
        AssistantError: with status 429 on quota errors, 500 otherwise
    """
    try:
        model = get_model()
        session = model.start_chat(history=build_history(previous_messages))
        response = session.send_message(message)
        return response.text
    except GeminiNotConfigured:
        raise AssistantError('Gemini API Key is missing.', status=500)
    except Exception as e:
        logger.error(f'Error in chat: {e}')
        lowered = str(e).lower()
        if any(marker in lowered for marker in QUOTA_MARKERS):
            raise AssistantError('AI chat quota exceeded. Please try again later.', status=429)
        raise AssistantError(str(e) or 'Failed to process chat message', status=500)
