"""RSS-sourced blog article drafting through an OpenAI-compatible chat API.

The flow is linear: pick a feed, pick a recent item, ask the
model for a JSON article, repair the JSON if needed and store it as a
published :class:`models.Article`. There are no retries; any failure is
reported to the caller of the cron endpoint.
"""
import json
import logging
import random
import re
import xml.etree.ElementTree as ET

import requests
from openai import OpenAI

from models import db, Article, utc_now

logger = logging.getLogger(__name__)

RSS_FEEDS = [
    'https://techcrunch.com/feed/',
    'https://news.ycombinator.com/rss',
]

OPENROUTER_BASE_URL = 'https://openrouter.ai/api/v1'
AI_MODEL = 'anthropic/claude-3-haiku'
RECENT_ITEMS = 5

ATOM_NS = '{http://www.w3.org/2005/Atom}'

SYSTEM_PROMPT = """
You are a World-Class SEO Expert and Senior Technology Copywriter.
Your task is to write a highly-optimized, engaging, and structured technical blog post based on recent tech news.

The article MUST follow these STRICT SEO guidelines:
1. Start with an engaging H1 Title (Do not include markdown # formatting in the title field, I will ask for JSON).
2. Use short paragraphs (max 3-4 sentences) for readability.
3. Use proper Semantic HTML structure (H2, H3 tags).
4. Include bulleted lists for scannability.
5. Write in a precise, professional tone with no generic fluff; focus on data, architecture, or business impact.
6. Generate compelling SEO Metadata (Title max 60 chars, Description max 160 chars).
7. CRITICAL: The `content` field must be a valid JSON string. You MUST NOT use raw unescaped newlines. Either escape them as `\\n` or write the entire HTML on a single line.
8. CRITICAL: You MUST escape all internal double quotes inside the JSON values using a backslash, e.g. \\". Do NOT use unescaped double quotes in the HTML attributes or text.

You MUST return the output ONLY as a raw JSON object with the following structure (no markdown code blocks, no other text):
{
  "title": "Engaging, SEO-optimized H1 Title",
  "slug": "url-friendly-slug-format",
  "metaTitle": "SEO Title | Max 60 chars",
  "metaDescription": "Compelling meta description | Max 160 chars",
  "keywords": "comma, separated, list, of, keywords",
  "content": "<p>Your full HTML formatted article content here, using <h2>, <h3>, <ul>, <li>, <p>, <strong> tags. EXACTLY ONE LINE OF STRING.</p>"
}
"""

TAG_RE = re.compile(r'<[^>]+>')
SLUG_RE = re.compile(r'[^a-z0-9]+')


class EmptyFeedError(Exception):
    pass


class InvalidModelOutput(Exception):
    def __init__(self, raw_output):
        super().__init__("LLM did not return valid JSON")
        self.raw_output = raw_output


def slugify(text):
    return SLUG_RE.sub('-', (text or '').lower()).strip('-')


def _text(element, tag):
    child = element.find(tag)
    if child is None or child.text is None:
        return ''
    return child.text.strip()


def _snippet(html):
    return ' '.join(TAG_RE.sub(' ', html or '').split())


def parse_feed(xml_text):
    """Return ``[{title, link, snippet}]`` for RSS 2.0 or Atom documents."""
    root = ET.fromstring(xml_text)
    items = []
    for item in root.iter('item'):
        items.append({
            'title': _text(item, 'title'),
            'link': _text(item, 'link'),
            'snippet': _snippet(_text(item, 'description')),
        })
    for entry in root.iter(f'{ATOM_NS}entry'):
        link = entry.find(f'{ATOM_NS}link')
        items.append({
            'title': _text(entry, f'{ATOM_NS}title'),
            'link': link.get('href', '') if link is not None else '',
            'snippet': _snippet(_text(entry, f'{ATOM_NS}summary') or _text(entry, f'{ATOM_NS}content')),
        })
    return items


def fetch_feed(url, timeout=20):
    response = requests.get(url, timeout=timeout, headers={'User-Agent': 'portfolio-article-bot/1.0'})
    response.raise_for_status()
    return parse_feed(response.content)


def pick_news_item(items, rng=random):
    if not items:
        raise EmptyFeedError("No items found in RSS feed")
    return rng.choice(items[:RECENT_ITEMS])


def build_user_prompt(item):
    source = item.get('snippet') or item.get('link')
    return (
        f"News Source Title: {item.get('title')}\n"
        f"News Source Snippet/Link: {source}\n\n"
        "Please write a comprehensive article based on this news. If it's just a link, infer the general "
        "tech topic or write a thought-leadership piece on that subject."
    )


def request_completion(api_key, user_prompt, model=AI_MODEL):
    client = OpenAI(base_url=OPENROUTER_BASE_URL, api_key=api_key)
    completion = client.chat.completions.create(
        model=model,
        messages=[
            {'role': 'system', 'content': SYSTEM_PROMPT},
            {'role': 'user', 'content': user_prompt},
        ],
        response_format={'type': 'json_object'},
    )
    content = completion.choices[0].message.content if completion.choices else None
    if not content:
        raise ValueError("No content received from the model")
    return content


def extract_json(raw):
    text = raw.replace('```json', '').replace('```', '').strip()
    start = text.find('{')
    end = text.rfind('}')
    if start != -1 and end != -1:
        text = text[start:end + 1]
    return text


def parse_model_output(raw):
    cleaned = extract_json(raw)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError:
        logger.error(f"Failed to parse model JSON: {cleaned[:500]}")
        raise InvalidModelOutput(cleaned)
    if not isinstance(data, dict):
        raise InvalidModelOutput(cleaned)
    return data


def unique_slug(slug, rng=random):
    if Article.query.filter_by(slug=slug).first() is None:
        return slug
    return f"{slug}-{rng.randint(0, 999)}"


def as_text(value):
    """Model fields may come back as lists or numbers; store them as text."""
    if value is None:
        return ''
    if isinstance(value, (list, tuple)):
        return ', '.join(str(item) for item in value)
    return str(value)


def save_article(data, rng=random):
    data = {key: as_text(value) for key, value in data.items()}
    title = data.get('title') or 'Untitled'
    article = Article(
        title=title,
        slug=unique_slug(slugify(data.get('slug')) or slugify(title), rng),
        description=data.get('metaDescription') or 'News analysis',
        content=data.get('content') or '',
        meta_title=data.get('metaTitle') or None,
        meta_description=data.get('metaDescription') or None,
        keywords=data.get('keywords') or '',
        status='PUBLISHED',
        published_at=utc_now(),
    )
    db.session.add(article)
    db.session.commit()
    return article


def generate_article(api_key, rng=random, feeds=RSS_FEEDS):
    feed_url = rng.choice(feeds)
    item = pick_news_item(fetch_feed(feed_url), rng)

    logger.info(f"Requesting LLM generation for: {item['title']}")
    raw = request_completion(api_key, build_user_prompt(item))
    article = save_article(parse_model_output(raw), rng)
    return article, item
