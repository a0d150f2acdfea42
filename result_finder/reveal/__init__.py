"""Reveal package pacing the disclosure of fetched records."""

from .reveal_queue import RevealQueue, RevealStep

__all__ = ["RevealQueue", "RevealStep"]
