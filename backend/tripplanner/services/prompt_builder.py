"""
Prompt construction for itinerary generation.

Pure functions of (plan, fixed points, profile, language): no I/O, no clock,
so the same inputs always render the same text.

Priority encoded in the instructions:
  1. fixed points -- immutable, the itinerary is built around them
  2. the user's own notes
  3. travel pace and interest tags
"""

from datetime import datetime
from typing import Optional, Sequence

from tripplanner.db.models import FixedPoint, Plan, Profile
from tripplanner.services.time_formatters import as_utc

USER_PROMPT = (
    "Please generate the travel plan now based on the provided details. "
    "Ensure the output is a valid JSON object matching the required structure."
)

NO_FIXED_POINTS = "No fixed points scheduled."
NO_NOTES = "No special notes provided."
NO_PREFERENCES = "No specific preferences"
DEFAULT_PACE = "moderate"

CATEGORY_GUIDE = """\
- "history" - Historical sites, monuments, heritage (use for: History & Culture preferences)
- "food" - Restaurants, cafes, food markets (use for: Local Food preferences)
- "sport" - Sports activities, fitness (use for: Active Recreation preferences)
- "nature" - Parks, gardens, natural attractions (use for: Nature & Parks preferences)
- "culture" - Museums, art galleries, theaters, concerts (use for: Art & Museums preferences)
- "transport" - Transportation between locations
- "accommodation" - Hotels, check-in/check-out
- "other" - Everything else including nightlife, shopping, etc."""

RESPONSE_FORMAT = """\
*   **If the plan is valid and realistic**, respond with the following JSON structure. All times MUST be in 24-hour format (e.g., 09:00, 18:00).
    ```json
    {
      "status": "success",
      "summary": "A brief, engaging summary of the entire trip, highlighting the key experiences.",
      "currency": "ISO 4217 currency code for the destination (e.g., EUR, USD, GBP, PLN, JPY)",
      "itinerary": {
        "destination": "...",
        "dates": { "start": "YYYY-MM-DD", "end": "YYYY-MM-DD" },
        "days": [
          {
            "date": "YYYY-MM-DD",
            "activities": [
              {
                "time": "HH:mm (24-hour format, e.g., 18:00, NOT 6:00 PM)",
                "activity": "Activity Title",
                "category": "MUST be one of: history, food, sport, nature, culture, transport, accommodation, other",
                "description": "Detailed description of the activity.",
                "estimated_price": "e.g. '18', '0' (for free), or null (numeric value as string, WITHOUT currency symbol)",
                "estimated_duration": "e.g. '2 hours', '30 minutes', or null"
              }
            ]
          }
        ]
      }
    }
    ```
*   **If the plan is invalid or unrealistic**, respond with this exact JSON structure:
    ```json
    {
      "status": "error",
      "error_type": "invalid_location" | "unrealistic_plan",
      "error_message": "A clear, user-friendly explanation of why the plan could not be generated."
    }
    ```"""


def format_trip_datetime(value: Optional[datetime]) -> str:
    """'Monday, June 15, 2026 at 09:00 (UTC)'."""
    if value is None:
        return "not specified"
    value = as_utc(value)
    return f"{value:%A, %B} {value.day}, {value:%Y} at {value:%H:%M} (UTC)"


def format_fixed_point(fixed_point: FixedPoint) -> str:
    """One bullet line: exact date and 24h time first, then location and details."""
    event_at = as_utc(fixed_point.event_at)
    line = (
        f"- {event_at:%Y-%m-%d} {event_at:%H:%M} ({event_at:%a, %b} {event_at.day}, {event_at:%Y}): "
        f"{fixed_point.location} - {fixed_point.description or 'No description'}"
    )
    if fixed_point.event_duration:
        line += f" (duration: {fixed_point.event_duration} min)"
    return line


def format_fixed_points(fixed_points: Sequence[FixedPoint]) -> str:
    if not fixed_points:
        return NO_FIXED_POINTS
    return "\n".join(format_fixed_point(fp) for fp in fixed_points)


def build_system_prompt(
    plan: Plan,
    fixed_points: Sequence[FixedPoint],
    profile: Profile,
    language: str,
) -> str:
    """Render the full instruction set for one generation request."""
    pace = profile.travel_pace or DEFAULT_PACE
    preferences = ", ".join(profile.preferences) if profile.preferences else NO_PREFERENCES
    notes = (plan.notes or "").strip() or NO_NOTES

    return f"""You are an expert travel planner AI. Your task is to generate a detailed, structured travel itinerary based on the user's plan details.
All text in the response, such as summaries, descriptions, and activity titles, must be in {language}. The JSON structure and keys must remain in English as specified below.
The response MUST be a single JSON object and nothing else. Do not include any introductory text, markdown formatting, or explanations.

**VERY IMPORTANT: First, you must validate the user's request.**
1.  **Check for Real Locations**: Verify if the destination is a real, plannable location. If it seems fake, nonsensical, or too broad (e.g., "Europe"), you must return an error with error_type "invalid_location".
2.  **Check for Realistic Plans**: Assess if the plan is realistically achievable in the given timeframe. For example, a trip to "see all of Spain in 3 days" is not realistic. If the plan is not feasible, you must return an error with error_type "unrealistic_plan".

**PLANNING PRIORITIES (in this order):**
1. FIXED POINTS are absolute. They are never moved, re-timed or dropped.
2. USER NOTES come next. Follow them unless they contradict a fixed point.
3. TRAVEL PACE and INTERESTS shape everything else: which activities you pick and how densely you schedule them.

**CRITICAL - FIXED POINTS (IMMUTABLE SCHEDULE):**
The user has pre-scheduled the following events. These are NON-NEGOTIABLE and MUST appear in the itinerary EXACTLY at the specified date and time, using the location as given. You are FORBIDDEN from:
- Moving these events to a different day
- Changing the time of these events
- Omitting any of these events from the plan
- Scheduling other activities that would conflict with these events

Build the rest of the itinerary AROUND these fixed points:
{format_fixed_points(fixed_points)}

**KEY REQUIREMENTS FOR THE PLAN:**
- Destination: {plan.destination}
- Start Date & Time: {format_trip_datetime(plan.start_date)}
- End Date & Time: {format_trip_datetime(plan.end_date)}
- User Notes: {notes}

**USER PREFERENCES:**
- **Travel Pace:** {pace}
  - "slow": Relaxed pace with fewer activities per day, longer breaks, more time at each location
  - "moderate": Balanced pace with a mix of activities and free time
  - "intensive": Fast-paced with many activities, packed schedule, shorter breaks
- **User Interests:** {preferences}

**CURRENCY REQUIREMENTS:**
- You MUST determine the correct local currency for the destination based on the country/region.
- Use the ISO 4217 three-letter currency code (e.g., "EUR" for Eurozone countries, "USD" for USA, "GBP" for UK, "JPY" for Japan, "PLN" for Poland, "CZK" for Czech Republic).
- All price estimates must be in the LOCAL currency of the destination, provided as numeric strings WITHOUT currency symbols.
- For free activities, use "0" as the price.

**ACTIVITY CATEGORIES:**
You MUST use ONLY these exact category values for activities:
{CATEGORY_GUIDE}

Match the user's interests (like "Art & Museums", "Nightlife") to the appropriate category from the list above.

**RESPONSE STRUCTURE:**

{RESPONSE_FORMAT}

Generate a plan that is logical, engaging, and takes into account travel times between locations. Be creative and suggest interesting activities, restaurants, and sights. Ensure all other activities are scheduled to accommodate the fixed points above.
"""
