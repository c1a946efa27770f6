"""
Achievement certificate rendering.
Draws a landscape PNG certificate with Pillow.
"""

import io
import random
import string
from datetime import date

from PIL import Image, ImageDraw, ImageFont

WIDTH, HEIGHT = 1600, 1130

PAPER = (253, 251, 245)
EMERALD = (5, 150, 105)
EMERALD_LIGHT = (209, 250, 229)
INK = (15, 23, 42)
MUTED = (100, 116, 139)

FONT_CANDIDATES = {
    True: ['/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf', 'DejaVuSans-Bold.ttf',
           'C:\\Windows\\Fonts\\arialbd.ttf'],
    False: ['/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf', 'DejaVuSans.ttf',
            'C:\\Windows\\Fonts\\arial.ttf'],
}


def load_font(size, bold=False):
    for path in FONT_CANDIDATES[bold]:
        try:
            return ImageFont.truetype(path, size)
        except (OSError, IOError):
            continue
    return ImageFont.load_default()


def generate_certificate_id():
    return 'CERT-' + ''.join(random.choices(string.ascii_uppercase + string.digits, k=9))


def _centered(draw, y, text, font, fill):
    left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
    draw.text(((WIDTH - (right - left)) // 2, y), text, font=font, fill=fill)
    return y + (bottom - top)


def _draw_frame(draw):
    margin = 40
    draw.rectangle([margin, margin, WIDTH - margin, HEIGHT - margin], outline=EMERALD, width=6)
    inner = margin + 18
    draw.rectangle([inner, inner, WIDTH - inner, HEIGHT - inner], outline=EMERALD_LIGHT, width=2)

    # Corner triangles
    size = 90
    corners = [
        [(margin, margin), (margin + size, margin), (margin, margin + size)],
        [(WIDTH - margin, margin), (WIDTH - margin - size, margin), (WIDTH - margin, margin + size)],
        [(margin, HEIGHT - margin), (margin + size, HEIGHT - margin), (margin, HEIGHT - margin - size)],
        [(WIDTH - margin, HEIGHT - margin), (WIDTH - margin - size, HEIGHT - margin),
         (WIDTH - margin, HEIGHT - margin - size)],
    ]
    for points in corners:
        draw.polygon(points, fill=EMERALD)


def _draw_leaf(draw, cx, cy, size):
    """Leaf emblem: a diamond body with a centre vein."""
    draw.polygon([(cx, cy - size), (cx + size // 2, cy), (cx, cy + size), (cx - size // 2, cy)], fill=EMERALD)
    draw.line([(cx, cy - size + 8), (cx, cy + size - 8)], fill=PAPER, width=max(2, size // 12))


def _draw_seal(draw, cx, cy):
    draw.ellipse([cx - 60, cy - 60, cx + 60, cy + 60], outline=EMERALD, width=6)
    draw.ellipse([cx - 40, cy - 40, cx + 40, cy + 40], outline=EMERALD, width=2)
    _draw_leaf(draw, cx, cy, 28)


def render_certificate(name, carbon_saved, badge_count, issued_on=None,
                       achievement_title='ReLief Carbon Reduction Journey', certificate_id=None):
    """
    Render an achievement certificate.

    Args:
        name: recipient name
        carbon_saved: kg CO2 saved, shown on the certificate
        badge_count: badges earned
        issued_on: issue date, defaults to today
        achievement_title: highlighted achievement line
        certificate_id: printed id, generated when omitted

    Returns:
        PNG bytes
    """
    issued_on = issued_on or date.today()
    certificate_id = certificate_id or generate_certificate_id()

    img = Image.new('RGB', (WIDTH, HEIGHT), PAPER)
    draw = ImageDraw.Draw(img)
    _draw_frame(draw)

    _draw_leaf(draw, WIDTH // 2, 150, 44)
    y = _centered(draw, 210, 'ReLief', load_font(48, bold=True), EMERALD) + 40
    y = _centered(draw, y, 'CRITERION OF EXCELLENCE', load_font(30, bold=True), MUTED) + 40
    y = _centered(draw, y, 'This is to certify that', load_font(28), INK) + 30
    y = _centered(draw, y, name or 'Eco Warrior', load_font(72, bold=True), INK) + 20
    draw.line([(WIDTH // 2 - 320, y + 10), (WIDTH // 2 + 320, y + 10)], fill=EMERALD, width=3)
    y += 50

    body_font = load_font(26)
    y = _centered(draw, y, 'has successfully completed the', body_font, INK) + 18
    y = _centered(draw, y, achievement_title, load_font(32, bold=True), EMERALD) + 18
    y = _centered(draw, y, 'and has demonstrated a strong commitment toward environmental', body_font, INK) + 12
    y = _centered(draw, y, 'responsibility and carbon reduction awareness.', body_font, INK) + 40

    stats = f'{carbon_saved:,.1f} kg CO2 saved   |   {badge_count} badge{"s" if badge_count != 1 else ""} earned'
    _centered(draw, y, stats, load_font(28, bold=True), EMERALD)

    footer_y = HEIGHT - 240
    label_font = load_font(20)
    value_font = load_font(28, bold=True)
    draw.text((220, footer_y), issued_on.strftime('%d %B %Y'), font=value_font, fill=INK)
    draw.line([(200, footer_y + 50), (520, footer_y + 50)], fill=MUTED, width=2)
    draw.text((300, footer_y + 60), 'Issue Date', font=label_font, fill=MUTED)

    _draw_seal(draw, WIDTH // 2, footer_y + 30)

    draw.text((WIDTH - 500, footer_y), 'The ReLief Team', font=value_font, fill=INK)
    draw.line([(WIDTH - 520, footer_y + 50), (WIDTH - 200, footer_y + 50)], fill=MUTED, width=2)
    draw.text((WIDTH - 480, footer_y + 60), 'ReLief Project Authority', font=label_font, fill=MUTED)

    _centered(draw, HEIGHT - 110, f'Certificate ID: {certificate_id}  -  Verified by ReLief',
              load_font(18), MUTED)

    out = io.BytesIO()
    img.save(out, 'PNG', optimize=True)
    return out.getvalue()
