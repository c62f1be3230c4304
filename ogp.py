# ogp.py - 文章 OGP 图片生成 (Pillow)

import io
import re
from typing import List, Optional, Tuple

import requests
from PIL import Image, ImageChops, ImageColor, ImageDraw, ImageFont

import config

PADDING = 80
TITLE_SIZE = 72
TITLE_MAX_WIDTH = 1000
TITLE_LINE_HEIGHT = 1.2
DATE_SIZE = 28
SITE_NAME_SIZE = 36
DATE_COLOR = (255, 255, 255, 204)   # rgba(255, 255, 255, 0.8)
WHITE = (255, 255, 255, 255)

FONT_URL_RE = re.compile(r'url\((.+?)\)')


class OgImageError(Exception):
    pass


def fetch_font(session: Optional[requests.Session] = None) -> bytes:
    """
    获取 Noto Sans JP Bold。
    config.OG_FONT_PATH 存在时直接读本地文件，否则从 Google Fonts 下载。
    """
    if config.OG_FONT_PATH:
        with open(config.OG_FONT_PATH, 'rb') as f:
            return f.read()

    session = session or requests.Session()
    response = session.get(config.OG_FONT_CSS_URL, timeout=config.OG_FETCH_TIMEOUT)
    response.raise_for_status()

    match = FONT_URL_RE.search(response.text)
    if not match:
        raise OgImageError('Failed to extract font URL from Google Fonts CSS')
    font_url = match.group(1).strip('\'"')

    font_response = session.get(font_url, timeout=config.OG_FETCH_TIMEOUT)
    font_response.raise_for_status()
    return font_response.content


def load_font(font_data: Optional[bytes], size: int) -> ImageFont.FreeTypeFont:
    if font_data:
        return ImageFont.truetype(io.BytesIO(font_data), size)
    return ImageFont.load_default(size=size)


def gradient_background(size: Tuple[int, int], start: str, end: str) -> Image.Image:
    """135deg 线性渐变：左上 start -> 右下 end。"""
    width, height = size
    start_rgb = ImageColor.getrgb(start)
    end_rgb = ImageColor.getrgb(end)

    # mask = (x/w + y/h) / 2，左上 0 右下 255
    vertical = Image.linear_gradient('L').resize((width, height))
    horizontal = Image.linear_gradient('L').transpose(Image.Transpose.TRANSPOSE).resize((width, height))
    mask = ImageChops.add(horizontal, vertical, scale=2.0)
    base = Image.new('RGBA', size, start_rgb)
    top = Image.new('RGBA', size, end_rgb)
    return Image.composite(top, base, mask)


def wrap_text(draw: ImageDraw.ImageDraw, text: str, font, max_width: int) -> List[str]:
    """按字符折行 (日文没有空格)，英文单词尽量不拆开。"""
    lines: List[str] = []
    current = ''
    for token in re.findall(r'[A-Za-z0-9\'’\-.,!?:;]+\s*|\s+|.', text):
        candidate = current + token
        if current and draw.textlength(candidate.rstrip(), font=font) > max_width:
            lines.append(current.rstrip())
            current = token.lstrip()
        else:
            current = candidate
    if current.strip():
        lines.append(current.rstrip())
    return lines


def render_og_image(title: str, date_text: str, font_data: Optional[bytes] = None,
                    site_name: Optional[str] = None) -> bytes:
    """生成 1200x630 的 PNG。"""
    size = config.OG_IMAGE_SIZE
    width, height = size
    image = gradient_background(size, *config.OG_GRADIENT)
    overlay = Image.new('RGBA', size, (0, 0, 0, 0))
    draw = ImageDraw.Draw(overlay)

    title_font = load_font(font_data, TITLE_SIZE)
    y = PADDING
    for line in wrap_text(draw, title, title_font, min(TITLE_MAX_WIDTH, width - 2 * PADDING)):
        draw.text((PADDING, y), line, font=title_font, fill=WHITE)
        y += int(TITLE_SIZE * TITLE_LINE_HEIGHT)

    # 页脚：左侧日期，右侧站点名，底部对齐
    date_font = load_font(font_data, DATE_SIZE)
    name_font = load_font(font_data, SITE_NAME_SIZE)
    footer_bottom = height - PADDING
    draw.text((PADDING, footer_bottom), date_text, font=date_font, fill=DATE_COLOR, anchor='ls')
    draw.text((width - PADDING, footer_bottom), site_name or config.SITE_NAME,
              font=name_font, fill=WHITE, anchor='rs')

    image = Image.alpha_composite(image, overlay)
    buffer = io.BytesIO()
    image.convert('RGB').save(buffer, format='PNG')
    return buffer.getvalue()
