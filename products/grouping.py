"""
Product grouping through an external chat-completion service.

The service is asked to cluster raw product names ("burger", "Burgers",
"hamburguer") or to find the names matching a free-text search. Its JSON
answer is matched back against the aggregated product list, so quantities
always come from our own data. Transport and configuration problems raise
UpstreamFailure; an answer that cannot be parsed degrades to the plain
product list.
"""
from __future__ import annotations

import hashlib
import json
import logging
import time

import requests
from django.conf import settings
from django.core.cache import cache

from orders.exceptions import UpstreamFailure
from .aggregation import aggregate_products

logger = logging.getLogger(__name__)

GROUP_CACHE_PREFIX = "products:ai-groups"

GROUP_SYSTEM_PROMPT = (
    "You are a product categorization assistant for a restaurant. "
    "Group similar menu items together. Return only valid JSON."
)
SEARCH_SYSTEM_PROMPT = "You are a product matching assistant. Return only valid JSON."


class GroupingClient:
    """Thin client for an OpenAI-compatible chat completions endpoint."""

    def __init__(self, api_key=None, api_url=None, model=None, timeout=None, session=None):
        self.api_key = api_key if api_key is not None else settings.OPENAI_API_KEY
        self.api_url = api_url or settings.OPENAI_API_URL
        self.model = model or settings.OPENAI_MODEL
        self.timeout = timeout or settings.OPENAI_TIMEOUT_SECONDS
        self.session = session or requests.Session()

    def complete_json(self, system_prompt: str, user_prompt: str, temperature: float) -> str:
        """Send one chat completion in JSON mode and return the message content."""
        if not self.api_key:
            raise UpstreamFailure(
                "OpenAI API key not configured. Add OPENAI_API_KEY to your environment variables."
            )

        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "response_format": {"type": "json_object"},
            "temperature": temperature,
        }
        try:
            response = self.session.post(
                self.api_url,
                json=payload,
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=self.timeout,
            )
        except requests.Timeout:
            logger.error("grouping_upstream_timeout", extra={"error_type": "Timeout"})
            raise UpstreamFailure("Product grouping service did not respond in time.")
        except requests.RequestException as exc:
            logger.error(
                "grouping_upstream_unreachable",
                extra={"error_type": type(exc).__name__, "error": str(exc)},
            )
            raise UpstreamFailure("Product grouping service is unreachable.")

        if not response.ok:
            logger.error("grouping_upstream_error", extra={"status": response.status_code})
            raise UpstreamFailure(
                f"Product grouping service answered with status {response.status_code}."
            )

        try:
            content = response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError):
            content = None
        if not content:
            raise UpstreamFailure("No response from AI.")
        return content


# --------------------------------- prompts ---------------------------------

def build_group_prompt(products) -> str:
    listing = "\n".join(f'- "{p["name"]}" (qty: {p["quantity"]})' for p in products)
    return f"""Analyze this list of product names and group similar items together.
Group items that are:
- Plural/singular versions of the same thing (burger/burgers)
- Common misspellings or variations
- The same product with different descriptions

Products:
{listing}

Return a JSON object with groups. Each group should have:
- groupName: A normalized name for the group (use the most common/proper form)
- variants: Array of all product names that belong to this group

Format:
{{
  "groups": [
    {{ "groupName": "Burger", "variants": ["burger", "burgers", "Burger", "hamburguer"] }},
    {{ "groupName": "French Fries", "variants": ["fries", "french fries", "Fries", "papas fritas"] }}
  ]
}}

IMPORTANT: Every product must be included in exactly one group. Single items get their own group."""


def build_search_prompt(query: str, products) -> str:
    listing = "\n".join(f'- {p["name"]} (qty: {p["quantity"]})' for p in products)
    return f"""Given this search term: "{query}"

Find ALL products from this list that match or are similar to the search term. Include:
- Exact matches
- Plural/singular variations (burger/burgers, fry/fries)
- Common misspellings
- Similar items (e.g., "cola" matches "Coca-Cola", "soda", "coke")
- Related food items

Products list:
{listing}

Return a JSON array of matching product names. Only include products from the list above.
Format: {{ "matches": ["product1", "product2"] }}"""


# --------------------------------- parsing ---------------------------------

def parse_groups(content: str, products) -> list[dict]:
    """Match the service's groups back onto our products.

    Variants match product names case-insensitively. Each product lands in
    the first group that claims it; products no group claims get a group of
    their own. Groups with no matching product are dropped.
    Raises ValueError when the content is not the expected JSON shape.
    """
    parsed = json.loads(content)
    raw_groups = parsed.get("groups") if isinstance(parsed, dict) else None
    if not isinstance(raw_groups, list):
        raise ValueError("'groups' must be a list")

    claimed = set()
    groups = []
    for raw in raw_groups:
        if not isinstance(raw, dict) or not isinstance(raw.get("variants"), list):
            raise ValueError("each group needs a 'variants' list")
        variants = [str(v) for v in raw["variants"]]
        wanted = {v.lower() for v in variants}
        items = [
            p for p in products
            if p["name"].lower() in wanted and p["name"] not in claimed
        ]
        if not items:
            continue
        claimed.update(p["name"] for p in items)
        groups.append(
            {
                "groupName": str(raw.get("groupName") or items[0]["name"]),
                "variants": variants,
                "totalQuantity": sum(p["quantity"] for p in items),
                "items": items,
            }
        )

    for p in products:
        if p["name"] not in claimed:
            groups.append(
                {
                    "groupName": p["name"],
                    "variants": [p["name"]],
                    "totalQuantity": p["quantity"],
                    "items": [p],
                }
            )

    groups.sort(key=lambda g: g["totalQuantity"], reverse=True)
    return groups


def parse_matches(content: str, products) -> list[dict]:
    """Products whose exact name is in the service's "matches" list."""
    parsed = json.loads(content)
    matches = parsed.get("matches") if isinstance(parsed, dict) else None
    if not isinstance(matches, list):
        raise ValueError("'matches' must be a list")
    names = {str(m) for m in matches}
    return [p for p in products if p["name"] in names]


# --------------------------------- operations ---------------------------------

def _fingerprint(products) -> str:
    blob = json.dumps(products, sort_keys=True).encode()
    return hashlib.sha256(blob).hexdigest()[:16]


def _now_ms() -> int:
    return int(time.time() * 1000)


def _cached_groups(key: str, ttl: int):
    """Return the cached {value, fetchedAt} entry if still inside its TTL."""
    entry = cache.get(key)
    if not entry:
        return None
    if _now_ms() - entry["fetchedAt"] >= ttl * 1000:
        return None
    return entry


def group_products(client: GroupingClient | None = None, refresh: bool = False) -> dict:
    """Cluster similar product names.

    Results are cached for AI_GROUP_CACHE_TTL_SECONDS per distinct product
    list; ``refresh`` skips the cache.
    """
    products = aggregate_products()
    if not products:
        return {"groups": [], "searchResults": []}

    ttl = settings.AI_GROUP_CACHE_TTL_SECONDS
    key = f"{GROUP_CACHE_PREFIX}:{_fingerprint(products)}"
    if not refresh:
        entry = _cached_groups(key, ttl)
        if entry is not None:
            return {"groups": entry["value"], "cached": True, "fetchedAt": entry["fetchedAt"]}

    client = client or GroupingClient()
    content = client.complete_json(GROUP_SYSTEM_PROMPT, build_group_prompt(products), temperature=0.2)
    try:
        groups = parse_groups(content, products)
    except ValueError as exc:
        logger.warning("grouping_parse_failed", extra={"error": str(exc)})
        return {"groups": [], "products": products, "degraded": True}

    entry = {"value": groups, "fetchedAt": _now_ms()}
    cache.set(key, entry, timeout=ttl)
    logger.info("products_grouped", extra={"count": len(groups)})
    return {"groups": groups, "cached": False, "fetchedAt": entry["fetchedAt"]}


def search_products(query: str, client: GroupingClient | None = None) -> dict:
    """Products matching a free-text query, as judged by the service."""
    products = aggregate_products()
    if not products:
        return {"groups": [], "searchResults": []}

    client = client or GroupingClient()
    content = client.complete_json(
        SEARCH_SYSTEM_PROMPT, build_search_prompt(query, products), temperature=0.3
    )
    try:
        results = parse_matches(content, products)
    except ValueError as exc:
        logger.warning("search_parse_failed", extra={"error": str(exc)})
        return {"groups": [], "searchResults": products, "degraded": True}

    return {
        "searchQuery": query,
        "searchResults": results,
        "totalQuantity": sum(p["quantity"] for p in results),
        "matchCount": len(results),
    }
