"""PubMed E-utilities ingestion for one clinical specialty."""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from typing import Any

import requests

from filters import is_review_article
from models import Record
from rate_limiter import RateLimiter
from specialty import SpecialtyRule
from text_normalizer import normalize

PUBMED_BASE_URL = "https://eutils.ncbi.nlm.nih.gov/entrez/eutils"
REQUEST_TIMEOUT_SECONDS = 30
FETCH_BATCH_SIZE = 50
MIN_ABSTRACT_LENGTH = 200

LOGGER = logging.getLogger(__name__)


def fetch_pubmed_records(
    rule: SpecialtyRule,
    max_results: int = 200,
    *,
    session: requests.Session | None = None,
    rate_limiter: RateLimiter,
) -> list[Record]:
    """Search PubMed for AI papers in ``rule``'s specialty and return Records.

    Review articles, records without a title, and abstracts shorter than
    MIN_ABSTRACT_LENGTH characters are skipped. A failed efetch batch is
    logged and skipped; a failed search raises.
    """
    http = session or requests.Session()
    pmids = search_pmids(rule.pubmed_query(), max_results, session=http, rate_limiter=rate_limiter)
    LOGGER.info("PubMed search for %s: found %s ids", rule.name, len(pmids))

    records: list[Record] = []
    seen: set[str] = set()
    total_batches = (len(pmids) + FETCH_BATCH_SIZE - 1) // FETCH_BATCH_SIZE
    for start in range(0, len(pmids), FETCH_BATCH_SIZE):
        batch = pmids[start : start + FETCH_BATCH_SIZE]
        LOGGER.info("Fetching batch %s/%s...", start // FETCH_BATCH_SIZE + 1, total_batches)
        rate_limiter.wait()
        try:
            response = http.get(
                f"{PUBMED_BASE_URL}/efetch.fcgi",
                params={"db": "pubmed", "id": ",".join(batch), "retmode": "xml"},
                timeout=REQUEST_TIMEOUT_SECONDS,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            LOGGER.warning("PubMed efetch failed for %s ids, skipping: %s", len(batch), exc)
            continue

        for record in parse_articles_xml(response.text):
            if record.identifier in seen:
                continue
            seen.add(record.identifier)
            records.append(record)

    return records


def search_pmids(
    query: str,
    max_results: int,
    *,
    session: requests.Session,
    rate_limiter: RateLimiter,
) -> list[str]:
    rate_limiter.wait()
    response = session.get(
        f"{PUBMED_BASE_URL}/esearch.fcgi",
        params={
            "db": "pubmed",
            "term": query,
            "retmax": str(max_results),
            "sort": "relevance",
            "retmode": "json",
        },
        timeout=REQUEST_TIMEOUT_SECONDS,
    )
    response.raise_for_status()
    payload: Any = response.json()
    ids = (payload.get("esearchresult") or {}).get("idlist") if isinstance(payload, dict) else None
    if not isinstance(ids, list):
        raise RuntimeError("Unexpected esearch payload shape: missing esearchresult.idlist")
    return [str(i) for i in ids]


def parse_articles_xml(xml_text: str) -> list[Record]:
    """Parse an efetch XML document into Records, skipping unusable articles."""
    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError as exc:
        LOGGER.warning("PubMed XML could not be parsed: %s", exc)
        return []

    records: list[Record] = []
    for article in root.iter("PubmedArticle"):
        record = _parse_article(article)
        if record is not None:
            records.append(record)
    return records


def _parse_article(article: ET.Element) -> Record | None:
    pmid = (article.findtext(".//MedlineCitation/PMID") or "").strip()
    if not pmid:
        return None

    title_el = article.find(".//Article/ArticleTitle")
    title = normalize(_inner_text(title_el))
    if not title:
        return None
    if is_review_article(title):
        LOGGER.info("  Skipped (review): %s...", title[:50])
        return None

    abstract = normalize(
        " ".join(_inner_text(el) for el in article.findall(".//Abstract/AbstractText"))
    )
    if len(abstract) < MIN_ABSTRACT_LENGTH:
        return None

    keywords = [normalize(_inner_text(k)) for k in article.findall(".//KeywordList/Keyword")]
    mesh = [normalize(_inner_text(m)) for m in article.findall(".//MeshHeading/DescriptorName")]

    return Record(
        identifier=f"pubmed-{pmid}",
        title=title,
        abstract_text=abstract,
        source="pubmed",
        source_url=f"https://pubmed.ncbi.nlm.nih.gov/{pmid}/",
        tags=tuple(t for t in keywords + mesh if t),
    )


def _inner_text(element: ET.Element | None) -> str:
    # Titles and abstracts carry inline markup (<i>, <sup>); keep its text.
    if element is None:
        return ""
    return "".join(element.itertext())
