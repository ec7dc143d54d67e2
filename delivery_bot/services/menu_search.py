from __future__ import annotations

import difflib
import re
import unicodedata
from typing import Protocol, Sequence

from delivery_bot.services.catalog import Product


def normalize(text: str) -> str:
    """Minusculas, sem acentos, pontuacao vira espaco ("X-Burguer" -> "x burguer")."""
    text = (text or "").lower()
    text = unicodedata.normalize("NFKD", text)
    text = "".join(char for char in text if not unicodedata.combining(char))
    text = re.sub(r"[-_]", " ", text)
    text = re.sub(r"[^\w\s]", " ", text)
    return re.sub(r"\s+", " ", text).strip()


def _significant_tokens(normalized_name: str) -> list[str]:
    return [token for token in normalized_name.split(" ") if len(token) > 2]


_TRAILING_QTY = re.compile(r"(?:^|\s)(\d+)\s*x?\s*$", re.IGNORECASE)
_LEADING_QTY = re.compile(r"^\s*(\d+)\s*x?\s+\S", re.IGNORECASE)


def extract_quantity(text: str) -> int:
    """Quantidade pedida: numero no fim da frase ("x-burguer 2"), ou no comeco ("2x x-burguer")."""
    raw = (text or "").strip()
    match = _TRAILING_QTY.search(raw) or _LEADING_QTY.match(raw)
    if not match:
        return 1
    return max(int(match.group(1)), 1)


class CatalogMatcher(Protocol):
    def match(self, text: str, products: Sequence[Product]) -> Product | None:
        ...


class FirstMatchMatcher:
    """Primeiro produto (na ordem do cardapio) cujo nome aparece no texto.

    Casa quando o nome normalizado esta contido na mensagem, ou quando todas as
    palavras significativas do nome (mais de 2 letras) aparecem na mensagem.
    """

    def match(self, text: str, products: Sequence[Product]) -> Product | None:
        normalized_text = normalize(text)
        if not normalized_text:
            return None
        for product in products:
            normalized_name = normalize(product.name)
            if not normalized_name:
                continue
            if normalized_name in normalized_text:
                return product
            tokens = _significant_tokens(normalized_name)
            if tokens and all(token in normalized_text for token in tokens):
                return product
        return None


class ComponentMatcher:
    """Casamento solto para sabores: o nome do produto contem o que foi digitado.

    Se nada contem o texto, cai no FirstMatchMatcher (cliente digitou "pizza de calabresa").
    """

    def __init__(self, fallback: CatalogMatcher | None = None) -> None:
        self._fallback = fallback or FirstMatchMatcher()

    def match(self, text: str, products: Sequence[Product]) -> Product | None:
        normalized_text = normalize(text)
        if not normalized_text:
            return None
        for product in products:
            if normalized_text in normalize(product.name):
                return product
        return self._fallback.match(text, products)


def _score_match(normalized_query: str, normalized_name: str) -> float:
    if not normalized_query or not normalized_name:
        return 0.0
    if normalized_query == normalized_name:
        return 1.0

    query_tokens = set(normalized_query.split())
    name_tokens = set(normalized_name.split())
    shared_tokens = query_tokens & name_tokens
    score = len(shared_tokens) / max(len(name_tokens), 1)

    similarity = difflib.SequenceMatcher(None, normalized_query, normalized_name).ratio()
    score = max(score, similarity * 0.8)

    if normalized_name in normalized_query:
        score = max(score, 0.9)
    return min(score, 1.0)


class ScoringMatcher:
    """Alternativa por pontuacao: melhor nota acima do limite, empate fica com o primeiro do cardapio."""

    def __init__(self, threshold: float = 0.6) -> None:
        self.threshold = threshold

    def match(self, text: str, products: Sequence[Product]) -> Product | None:
        normalized_query = normalize(text)
        if not normalized_query:
            return None

        best: Product | None = None
        best_score = 0.0
        for product in products:
            score = _score_match(normalized_query, normalize(product.name))
            if score > best_score:
                best, best_score = product, score
        if best_score < self.threshold:
            return None
        return best
