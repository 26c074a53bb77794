"""3D model references for placed items."""

from typing import Optional, Tuple

from .rules import RuleBook


def model_urls_for(label: str, rule_book: RuleBook) -> Tuple[str, ...]:
    """All candidate model URLs for *label*, primary first."""
    lower = (label or "").lower()
    for key, urls in rule_book.model_assets:
        if key in lower:
            return urls
    return ()


def model_url_for(label: str, rule_book: RuleBook) -> Optional[str]:
    urls = model_urls_for(label, rule_book)
    return urls[0] if urls else None
