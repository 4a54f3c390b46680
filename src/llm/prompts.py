SYSTEM_PROMPT = (
    "You generate realistic calendar events. "
    "Reply with valid JSON only, no commentary."
)


def event_generation_prompt(count: int, description: str) -> str:
    return f"""Based on the user's input "{description}", generate exactly {count} diverse and realistic calendar events.

Requirements:
- Generate exactly {count} different events with specific, actionable titles.
- Each event has a duration in minutes between 30 and 240.
- Each event has a short description with context, objectives or preparation notes.

Return the response in this exact JSON format:
{{"events": [{{"title": "Event Title", "duration": 60, "description": "What this event involves"}}]}}
"""
