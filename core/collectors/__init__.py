"""
AuraLock Collectors

Public exports for the behavioral signal collectors.
"""

from core.collectors.blink import BlinkCollector, BlinkSimulator, EyeOpennessDetector
from core.collectors.keystroke import TypingCollector
from core.collectors.swipe import SwipeCollector

__all__ = [
    "BlinkCollector",
    "BlinkSimulator",
    "EyeOpennessDetector",
    "TypingCollector",
    "SwipeCollector",
]
