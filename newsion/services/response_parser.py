"""
Best-effort extraction of a title/content pair from a model response.

Tiers, first match wins:

1. ``TITLU:``/``CONȚINUT:`` lines or ``===TITLU===`` style blocks
2. a JSON object, parsed with progressively more aggressive cleanup
3. regex pairs for ``"title"`` and ``"content"``
4. the raw response with a decorated original title
"""
import json
import logging
import re
from typing import Optional

logger = logging.getLogger(__name__)

MARKERS = 'markers'
JSON = 'json'
REGEX = 'regex'
RAW = 'raw'

_CONTENT_WORD = r'CON[ȚŢT]INUT'

BLOCK_TITLE_RE = re.compile(rf'===\s*TITLU\s*===\s*([\s\S]*?)(?=\s*===\s*{_CONTENT_WORD}\s*===|$)')
BLOCK_CONTENT_RE = re.compile(rf'===\s*{_CONTENT_WORD}\s*===\s*([\s\S]*?)(?=\s*===\s*IMAGINE\s*===|$)')
BLOCK_IMAGE_RE = re.compile(r'===\s*IMAGINE\s*===\s*([\s\S]*)')
LINE_TITLE_RE = re.compile(r'TITLU:\s*(.*?)(?=\n|$)')
LINE_CONTENT_RE = re.compile(rf'{_CONTENT_WORD}:\s*([\s\S]*)')

JSON_STRING = r'"((?:[^"\\]|\\.)*)"'
TITLE_PAIR_RE = re.compile(rf'"(?:title|titlu)"\s*:\s*{JSON_STRING}', re.IGNORECASE)
CONTENT_PAIR_RE = re.compile(rf'"(?:content|continut|conținut)"\s*:\s*{JSON_STRING}', re.IGNORECASE)

SMART_QUOTES = str.maketrans({'“': '"', '”': '"', '„': '"', '«': '"', '»': '"', '‘': "'", '’': "'"})

# Sentences where the model narrates its own work
META_PATTERNS = [
    re.compile(r'\b(?:Acum|Apoi|Voi|Trebuie să|O să|Hai să|Pentru a|În primul rând|În continuare|'
               r'Următorul pas)[^.!?:;]*\b(?:scriu|explic|analizez|dezvolt|prezint|descriu|structurez|'
               r'menționez|redactez|creez|includ)\b[^.!?]*\.', re.IGNORECASE),
    re.compile(r'\b(?:articolul|textul|conținutul)\b[^.!?]*\b(?:trebuie|ar trebui|va fi)\b[^.!?]*'
               r'\b(?:structurat|scris|redactat|formulat)\b[^.!?]*\.', re.IGNORECASE),
    re.compile(r'\b(?:voi|trebuie să|este important să)\b[^.!?]*cit[aăe][^.!?]*surs[aăe][^.!?]*\.',
               re.IGNORECASE),
    re.compile(r'[^.!?\n]*(?:meta comentarii|explic cum|cum scriu|procesul de creație|stilul de scriere)'
               r'[^.!?]*\.', re.IGNORECASE),
    re.compile(r'[^.!?\n]*(?:conform instrucțiunilor|așa cum s-a cerut|după cum mi s-a solicitat)'
               r'[^.!?]*\.', re.IGNORECASE),
    re.compile(r'\([^)]*(?:articol|titlu|conținut|text)[^)]*(?:profesional|jurnalistic|captivant|sportiv)'
               r'[^)]*\)', re.IGNORECASE),
    re.compile(r"\b(?:Let me|I'll|I will|I need to|I should|I'm|I am)\b[^.!?]*[.!?]", re.IGNORECASE),
]

PROMPT_ECHOES = re.compile(r'RĂSPUNDE FOLOSIND|CERINȚE PENTRU|ARTICOL ORIGINAL:|INFORMAȚII ADIȚIONALE:|'
                           r'SUBIECT VIRAL:|INFORMAȚII DE CONTEXT:')
EDITORIAL_LABELS = re.compile(r'^\s*(?:Introducere|Cuprins|Detalii despre|Reacții|Perspective|Concluzie)'
                              r'\s*:\s*$', re.IGNORECASE | re.MULTILINE)
TITLE_META = re.compile(r'(?:și urmat de|fără explicații sau|trebuie să)[^.!?]*', re.IGNORECASE)


def clean_generated_text(text: str) -> str:
    """Strip markdown, meta-commentary and stray JSON punctuation from generated text."""
    if not text:
        return ''

    # Markdown
    text = re.sub(r'\[([^\]]+)\]\(([^)]+)\)', r'\1 (\2)', text)
    text = re.sub(r'\*\*([^*]+)\*\*', r'\1', text)
    text = re.sub(r'(?<!\w)\*([^*\n]+)\*(?!\w)', r'\1', text)
    text = re.sub(r'^\s*#+\s+', '', text, flags=re.MULTILINE)

    for pattern in META_PATTERNS:
        text = pattern.sub('', text)

    # Leftovers of a JSON answer
    text = re.sub(r'(?:b?oxed)\{[`\'"]*\}json\s*\{', '', text)
    text = re.sub(r'^\s*\{?\s*"title"\s*:\s*"', '', text)
    text = re.sub(r'"\s*,\s*"content"\s*:\s*"', '\n\n', text)
    text = re.sub(r'"\s*\}\s*$', '', text)
    text = text.replace('\\n', '\n')

    # Labels copied from the prompt
    text = re.sub(r'^.*TITLU:.*\n?', '', text, flags=re.MULTILINE)
    text = re.sub(rf'^\s*{_CONTENT_WORD}:\s*', '', text, flags=re.IGNORECASE | re.MULTILINE)
    text = PROMPT_ECHOES.sub('', text)
    text = EDITORIAL_LABELS.sub('', text)

    text = re.sub(r'[ \t]{2,}', ' ', text)
    text = re.sub(r'[ \t]+\n', '\n', text)
    text = re.sub(r'\n\s*\n(\s*\n)+', '\n\n', text)
    return text.strip()


def clean_title(title: str) -> str:
    title = clean_generated_text(title)
    title = TITLE_META.sub('', title)
    title = title.strip().strip('*#[]').strip()
    # Only quotes wrapping the whole title
    if len(title) > 1 and title[0] == title[-1] and title[0] in '"\'':
        title = title[1:-1].strip()
    return title


def _strip_fences(text: str) -> str:
    if "```json" in text:
        start = text.find("```json") + 7
        end = text.find("```", start)
        return text[start:end if end != -1 else None].strip()
    if "```" in text:
        start = text.find("```") + 3
        end = text.find("```", start)
        return text[start:end if end != -1 else None].strip()
    return text


def _json_candidate(text: str) -> Optional[str]:
    text = _strip_fences(text)
    start = text.find('{')
    end = text.rfind('}')
    if start == -1 or end <= start:
        return None
    return text[start:end + 1]


def _pick(data, *keys) -> Optional[str]:
    for key in keys:
        value = data.get(key)
        if isinstance(value, str) and value.strip():
            return value
    return None


def _try_json(candidate: str) -> Optional[dict]:
    attempts = [
        lambda s: s,
        lambda s: re.sub(r'[\x00-\x1f\x7f]', ' ', s),
        lambda s: re.sub(r',\s*([}\]])', r'\1',
                         re.sub(r'[\x00-\x1f\x7f]', ' ', s.translate(SMART_QUOTES).replace('\\\\n', '\\n'))),
    ]
    for attempt in attempts:
        try:
            data = json.loads(attempt(candidate))
        except (json.JSONDecodeError, ValueError):
            continue
        if not isinstance(data, dict):
            continue
        content = _pick(data, 'content', 'continut', 'conținut')
        if content:
            return {'title': _pick(data, 'title', 'titlu'), 'content': content}
    return None


def _unescape(value: str) -> str:
    try:
        return json.loads(f'"{value}"')
    except (json.JSONDecodeError, ValueError):
        return value.replace('\\n', '\n').replace('\\"', '"')


def _from_markers(text: str) -> Optional[dict]:
    block_title = BLOCK_TITLE_RE.search(text)
    block_content = BLOCK_CONTENT_RE.search(text)
    if block_title or block_content:
        image = BLOCK_IMAGE_RE.search(text)
        title = block_title.group(1).strip() if block_title else None
        if block_content:
            content = block_content.group(1).strip()
        else:
            content = text[block_title.end():].strip()
        return {
            'title': title,
            'content': content,
            'image_hint': image.group(1).strip() if image else None,
            'block': True,
        }

    line_title = LINE_TITLE_RE.search(text)
    line_content = LINE_CONTENT_RE.search(text)
    if not (line_title or line_content):
        return None
    if line_content:
        content = line_content.group(1).strip()
    else:
        content = text[line_title.end():].strip()
    return {
        'title': line_title.group(1).strip() if line_title else None,
        'content': content,
    }


def parse_rewrite_response(text: str, original_title: str) -> dict:
    """
    Extract {title, content} from a model response.

    The result also carries ``tier`` (which strategy matched) and
    ``image_hint`` (the ===IMAGINE=== block, if any). The raw tier returns
    the response untouched.
    """
    text = text or ''

    parsed = _from_markers(text)
    tier = MARKERS
    if not parsed or not parsed['content']:
        parsed, tier = None, JSON
        candidate = _json_candidate(text)
        if candidate:
            parsed = _try_json(candidate)

    if not parsed:
        tier = REGEX
        content_match = CONTENT_PAIR_RE.search(text)
        if content_match:
            title_match = TITLE_PAIR_RE.search(text)
            parsed = {
                'title': _unescape(title_match.group(1)) if title_match else None,
                'content': _unescape(content_match.group(1)),
            }

    if not parsed:
        logger.warning("No structure found in model response, using raw text")
        return {
            'title': f"{original_title} (regenerated)",
            'content': text,
            'tier': RAW,
            'image_hint': None,
        }

    if tier != MARKERS:
        logger.warning(f"Model response parsed with the {tier} fallback")

    title = clean_title(parsed.get('title') or '') or original_title
    content = clean_generated_text(parsed['content'])
    # Block answers often repeat the title as the first line of the content
    if parsed.get('block') and title and re.match(rf'{re.escape(title)}[ \t]*(?:\n|$)', content):
        content = content[len(title):].strip()

    return {
        'title': title,
        'content': content,
        'tier': tier,
        'image_hint': parsed.get('image_hint'),
    }
