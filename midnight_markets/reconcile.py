"""Reconciliation of DEX trading pairs into one quote per token.

A token listed on several pools shows up once per pool. The pipeline keeps
the quote from the most liquid pool:

  1. drop pairs outside the selected chain (unless ``all``)
  2. stable sort by USD liquidity, descending
  3. keep the first pair seen for each base-token contract address
"""
from __future__ import annotations

from typing import Iterable, List

from .models import Chain
from .payloads import DexPair


def filter_by_chain(pairs: Iterable[DexPair], chain: Chain) -> List[DexPair]:
    if chain == Chain.ALL:
        return list(pairs)
    return [pair for pair in pairs if pair.chain_id == chain.value]


def rank_by_liquidity(pairs: Iterable[DexPair]) -> List[DexPair]:
    return sorted(pairs, key=lambda pair: pair.liquidity_usd, reverse=True)


def dedupe_by_contract(pairs: Iterable[DexPair]) -> List[DexPair]:
    seen = set()
    kept = []
    for pair in pairs:
        address = pair.token_address
        if address in seen:
            continue
        seen.add(address)
        kept.append(pair)
    return kept


def reconcile_pairs(pairs: Iterable[DexPair], chain: Chain = Chain.ALL) -> List[DexPair]:
    return dedupe_by_contract(rank_by_liquidity(filter_by_chain(pairs, chain)))


__all__ = ["filter_by_chain", "rank_by_liquidity", "dedupe_by_contract", "reconcile_pairs"]
