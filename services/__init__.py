"""
Wearly Services

This package contains service modules for the Wearly outfit assistant:
- turn_controller: Chat turn orchestration
- stylist: Async facade over the external AI and weather services
- gradient_agent: DigitalOcean agent prompts for outfit recommendations
- image_processor: Gemini Vision photo analysis
- gemini_generator: Gemini outfit image generation
- weather: Weather lookup and reverse geocoding
- tone: Tone-specific chat strings
- quick_replies: Follow-up suggestion policy
- query_handler: Image request detection
- session_manager: Chat session registry
- image_converter / utils: Image file and data URL handling
"""

__all__ = [
    'turn_controller',
    'stylist',
    'gradient_agent',
    'image_processor',
    'gemini_generator',
    'weather',
    'tone',
    'quick_replies',
    'query_handler',
    'session_manager',
    'image_converter',
    'utils',
]
