"""Prompt construction and article generation."""
import logging
from datetime import datetime, timedelta
from typing import Optional
from urllib.parse import urlparse

from newsion.models.article import utcnow
from newsion.services.errors import GenerationError
from newsion.services.llm_client import BaseLLMClient, LLMClientFactory
from newsion.services.response_parser import parse_rewrite_response

logger = logging.getLogger(__name__)

ROMANIAN_MONTHS = [
    'ianuarie', 'februarie', 'martie', 'aprilie', 'mai', 'iunie',
    'iulie', 'august', 'septembrie', 'octombrie', 'noiembrie', 'decembrie',
]

SPORTS_JOURNALIST = (
    'Ești un jurnalist sportiv de actualitate care raportează evenimente sportive recente și știri '
    'de ultimă oră din data publicării lor. Consideri informațiile ca fiind actuale și la zi. Ești '
    'expert în contextualizarea știrilor și integrarea informațiilor din surse multiple.'
)

NEWS_JOURNALIST = (
    'Ești un jurnalist expert specializat în actualități din România. Scrii articole profesionale, '
    'informative și captivante despre subiecte de interes național. Folosești un stil jurnalistic de '
    'calitate, cu structură clară și informații verificate.'
)

BLOCK_FORMAT = """RĂSPUNDE FOLOSIND EXACT URMĂTORUL FORMAT:

===TITLU===
[Scrie aici un titlu captivant]

===CONȚINUT===
[Scrie aici conținutul articolului]"""


def format_date_ro(value: datetime) -> str:
    return f"{value.day} {ROMANIAN_MONTHS[value.month - 1]} {value.year}"


def temporal_context(pub_date: datetime, now: datetime) -> str:
    """Describe how old the article is relative to ``now``, in whole days."""
    days = (now - pub_date) // timedelta(days=1)
    if days == 0:
        return 'Acest articol a fost publicat astăzi.'
    if days == 1:
        return 'Acest articol a fost publicat ieri.'
    if days < 0:
        return f'Acest articol este programat să fie publicat în {abs(days)} zile.'
    return f'Acest articol a fost publicat acum {days} zile.'


def source_domain(url: str) -> str:
    host = urlparse(url or '').hostname
    if not host:
        return 'sursa originală'
    return host[4:] if host.startswith('www.') else host


def build_news_prompt(article: dict, now: datetime, enrichment: str = '') -> str:
    pub_date = article['pub_date']
    today = format_date_ro(now)

    instructions = [
        'Această știre este RECENTĂ - tratează informațiile ca fiind de ACTUALITATE',
        'Menține TOATE referințele temporale din articolul original (ieri, azi, mâine, data exactă)',
        'Nu modifica datele, scorurile sau statisticile menționate în articolul original',
        'Păstrează toate numele, echipele și competițiile exacte din articolul original',
        'Extinde știrea cu informații de context relevante și actuale',
        'Evidențiază când s-a întâmplat evenimentul folosind expresii clare de timp',
        'Structurează articolul cu titlu captivant, introducere, cuprins și concluzie',
        'Include în final o referință că știrea este din data originală de publicare',
    ]
    if enrichment:
        instructions.append('FOLOSEȘTE informațiile actuale de mai sus pentru a completa cu context și date recente')
    numbered = '\n'.join(f"{i}. {line}" for i, line in enumerate(instructions, start=1))

    extra = f"INFORMAȚII ACTUALE ({today}):\n{enrichment}\n\n" if enrichment else ''

    return f"""Ești un jurnalist profesionist specializat în știri sportive actuale la data de {today}.

Rescrie următoarea știre recentă, punând accent pe ACTUALITATEA informațiilor și păstrând toate datele și evenimentele recente.

Titlul original: "{article['title']}"

Conținutul original:
\"\"\"
{article['content']}
\"\"\"

Data publicării originale: {pub_date.strftime('%d.%m.%Y')}
Context temporal: {temporal_context(pub_date, now)}
Sursa originală: {source_domain(article.get('source_url'))}
URL sursă: {article.get('source_url', '')}

{extra}INSTRUCȚIUNI IMPORTANTE:
{numbered}

Răspunsul tău trebuie să conțină:
TITLU: [Titlu captivant care subliniază actualitatea știrii]
CONȚINUT: [Articolul rescris păstrând caracterul actual al informațiilor, minim 500 cuvinte]"""


def build_topic_prompt(topic: str, context: str) -> str:
    return f"""Ești un jurnalist profesionist specializat în actualități din România. Sarcina ta este să scrii un articol complet despre un subiect viral din România.

SUBIECT VIRAL: "{topic}"

INFORMAȚII DE CONTEXT:
{context}

CERINȚE PENTRU ARTICOL:
- Scrie un articol informativ, obiectiv și captivant despre acest subiect viral
- Folosește informațiile din context într-o formă jurnalistică profesională
- Articolul trebuie să aibă între 600-1000 de cuvinte
- Menționează sursele informațiilor atunci când este relevant
- Folosește diacritice românești corect și un ton neutru

{BLOCK_FORMAT}

===IMAGINE===
[Descrie aici o imagine sugestivă pentru acest articol] (opțional)"""


def build_free_prompt(prompt: str, search_results: str = '') -> str:
    extra = f"\n\nINFORMAȚII ADIȚIONALE DIN CĂUTARE WEB:\n{search_results}" if search_results else ''
    return f"{prompt}{extra}\n\n{BLOCK_FORMAT}"


class RewriteGenerator:
    """Generates articles through an LLM client and parses the answer."""

    def __init__(self, client: Optional[BaseLLMClient] = None):
        self._client = client

    @property
    def client(self) -> BaseLLMClient:
        if self._client is None:
            self._client = LLMClientFactory.create()
        return self._client

    def _complete(self, prompt: str, system: str, temperature: float) -> str:
        try:
            text = self.client.complete(prompt, system=system, max_tokens=4000, temperature=temperature)
        except GenerationError:
            raise
        except Exception as e:
            raise GenerationError(f"LLM call failed: {e}") from e
        if not text or not text.strip():
            raise GenerationError("LLM returned an empty response")
        return text

    def rewrite_article(self, article: dict, enrichment: str = '',
                        now: Optional[datetime] = None) -> dict:
        """Rewrite a (translated) feed item. Raises GenerationError."""
        now = now or utcnow()
        text = self._complete(build_news_prompt(article, now, enrichment), SPORTS_JOURNALIST, 0.7)
        result = parse_rewrite_response(text, article['title'])
        logger.debug(f"Rewrote '{article['title'][:60]}' via {result['tier']} tier")
        return result

    def article_from_topic(self, topic: str, context: str) -> dict:
        text = self._complete(build_topic_prompt(topic, context), NEWS_JOURNALIST, 0.6)
        return parse_rewrite_response(text, f"{topic} - Subiect Viral în România")

    def article_from_prompt(self, prompt: str, search_results: str = '',
                            title: Optional[str] = None) -> dict:
        text = self._complete(build_free_prompt(prompt, search_results), SPORTS_JOURNALIST, 0.5)
        return parse_rewrite_response(text, title or 'Articol generat din prompt')
