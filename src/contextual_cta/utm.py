# -*- coding: utf-8 -*-
"""
UTM URL construction.

Analytics dashboards key on these exact parameter names and values, so the
output of generate_utm_url is a stable contract:

- utm_campaign: blog_creator | reddit_content_creator |
  competitor_conquesting_<slug>
- utm_medium: contextual_cta
- utm_term: target keyword, lowercased, whitespace runs replaced by "_"

Parameters are always appended in that order after any non-UTM query
parameters already on the base URL.
"""

import re
from typing import Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from .models import CampaignType, UTMUrlResult


UTM_MEDIUM = "contextual_cta"
UTM_KEYS = ("utm_campaign", "utm_medium", "utm_term")
DEFAULT_COMPETITOR_SLUG = "generic"


class UTMUrlError(ValueError):
    """Raised when a base URL cannot carry UTM parameters."""
    pass


def competitor_slug(competitor_name: Optional[str]) -> str:
    """Lowercase alphanumeric slug of a competitor name, 'generic' if absent."""
    if not competitor_name:
        return DEFAULT_COMPETITOR_SLUG
    slug = re.sub(r"[^a-z0-9]", "", competitor_name.lower())
    return slug or DEFAULT_COMPETITOR_SLUG


def campaign_value(
    campaign_type: "CampaignType | str",
    competitor_name: Optional[str] = None,
) -> str:
    """
    Build the utm_campaign value.

    Raises:
        ValueError: If the campaign type is unknown.
    """
    campaign = campaign_type if isinstance(campaign_type, CampaignType) else CampaignType(campaign_type)
    if campaign == CampaignType.COMPETITOR_CONQUESTING:
        return f"competitor_conquesting_{competitor_slug(competitor_name)}"
    return campaign.value


def term_value(target_keyword: str) -> str:
    return re.sub(r"\s+", "_", target_keyword.lower())


def build_utm_parameters(
    campaign_type: "CampaignType | str",
    target_keyword: str,
    competitor_name: Optional[str] = None,
) -> list[tuple[str, str]]:
    """Return the three UTM parameters in wire order."""
    return [
        ("utm_campaign", campaign_value(campaign_type, competitor_name)),
        ("utm_medium", UTM_MEDIUM),
        ("utm_term", term_value(target_keyword)),
    ]


def generate_utm_result(
    base_url: str,
    campaign_type: "CampaignType | str",
    target_keyword: str,
    competitor_name: Optional[str] = None,
) -> UTMUrlResult:
    """
    Attach UTM parameters to a URL.

    Args:
        base_url: Absolute http(s) URL of the offer.
        campaign_type: Campaign the click is attributed to.
        target_keyword: Keyword the article targets.
        competitor_name: Competitor for conquesting campaigns.

    Returns:
        UTMUrlResult with the tracked URL and each parameter value.

    Raises:
        UTMUrlError: If base_url is not an absolute http(s) URL.
    """
    parts = urlsplit((base_url or "").strip())
    if parts.scheme.lower() not in ("http", "https") or not parts.netloc:
        raise UTMUrlError(f"Invalid base URL: {base_url!r}")

    params = build_utm_parameters(campaign_type, target_keyword, competitor_name)
    query = [
        (key, value)
        for key, value in parse_qsl(parts.query, keep_blank_values=True)
        if not key.lower().startswith("utm_")
    ]
    query.extend(params)

    url = urlunsplit((
        parts.scheme.lower(),
        parts.netloc,
        parts.path or "/",
        urlencode(query),
        parts.fragment,
    ))
    values = dict(params)
    return UTMUrlResult(
        url=url,
        base_url=base_url,
        utm_campaign=values["utm_campaign"],
        utm_medium=values["utm_medium"],
        utm_term=values["utm_term"],
    )


def generate_utm_url(
    base_url: str,
    campaign_type: "CampaignType | str",
    target_keyword: str,
    competitor_name: Optional[str] = None,
) -> str:
    """Attach UTM parameters to a URL and return the tracked URL string."""
    return generate_utm_result(base_url, campaign_type, target_keyword, competitor_name).url


def extract_utm_parameters(url: str) -> dict[str, str]:
    """Return the UTM parameters present on a URL."""
    return {
        key: value
        for key, value in parse_qsl(urlsplit(url).query, keep_blank_values=True)
        if key in UTM_KEYS
    }
