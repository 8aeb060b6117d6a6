"""
Prompts for the vision service, one per analysis type
"""

from typing import Optional

from ..geometry import Coordinate

CONSTRAINT_SCHEMA_PROMPT = """Analyze this satellite image of a residential property and provide a JSON response with detailed information about its constraints and features. The response should follow this exact structure:

{
  "propertyBoundary": {
    "coordinates": [
      {"lat": number, "lng": number},
      // ... array of lat/lng points forming a closed polygon (first and last point should match)
    ]
  },
  "structures": [
    {
      "type": "main_house" | "garage" | "pool" | "shed",
      "coordinates": [
        {"lat": number, "lng": number},
        // ... array of lat/lng points forming a closed polygon
      ]
    }
    // ... array of all structures
  ],
  "setbacks": {
    "coordinates": [
      {"lat": number, "lng": number},
      // ... array of lat/lng points forming the setback polygon
    ],
    "front": number,  // feet
    "back": number,   // feet
    "left": number,   // feet
    "right": number   // feet
  },
  "buildableAreas": [
    {
      "coordinates": [
        {"lat": number, "lng": number},
        // ... array of lat/lng points forming a closed polygon
      ],
      "suitability": "excellent" | "good" | "poor",
      "notes": [
        // ... array of strings describing advantages/challenges
      ]
    }
    // ... array of potential buildable areas
  ]
}

Important:
1. All coordinates must be in decimal degrees (latitude/longitude)
2. All measurements must be in feet
3. Each polygon (property, structures, setbacks, buildable areas) must be closed - first and last point should match
4. Coordinates should be ordered clockwise starting from the northwest corner
5. Response MUST be valid JSON that matches this exact structure

Analyze the image and provide the coordinates and measurements in this JSON format."""

GENERAL_ANALYSIS_PROMPT = """Analyze this satellite image and identify features that would impact ADU construction that aren't visible in standard mapping data. Focus on qualitative assessment and visual identification:

1. Existing Structures: classify all structures (house, garage, shed, pool, etc.), their condition (excellent, good, poor) and their locations relative to property boundaries.
2. Setbacks & Buildable Areas: estimate setback distances from property lines in feet, visible easements, off-limits areas and potential buildable areas with approximate sizes.
3. Terrain & Drainage: ground conditions, slopes, drainage patterns, retaining walls; concerns and opportunities.
4. Access & Privacy: construction access routes, privacy features (fences, trees), access challenges.
5. Construction Suitability: rate potential ADU locations (excellent, good, poor) with reasons, plus general notes.

Return ONLY the JSON with no markdown formatting or backticks:
{
  "structures": [{"type": string, "condition": "excellent" | "good" | "poor", "location": string, "notes": string[]}],
  "setbacks": {"front": number, "back": number, "left": number, "right": number, "notes": string[]},
  "buildableAreas": [{"location": string, "suitability": "excellent" | "good" | "poor", "estimatedSize": string, "advantages": string[], "challenges": string[]}],
  "terrain": {"description": string, "concerns": string[], "opportunities": string[]},
  "access": {"bestRoutes": string[], "privacyFeatures": string[], "challenges": string[]},
  "constructionSuitability": {"bestLocations": [{"location": string, "rating": "excellent" | "good" | "poor", "reasons": string[]}], "generalNotes": string[]}
}"""

PROPERTY_BOUNDARY_PROMPT = """Identify the boundary of the residential parcel at the center of this satellite image.

Return ONLY JSON of the form:
{"corners": [{"lat": number, "lng": number}, {"lat": number, "lng": number}, {"lat": number, "lng": number}, {"lat": number, "lng": number}]}

Give exactly four corners in decimal degrees, ordered clockwise starting from the northwest corner."""

DEFAULT_CONSTRAINTS_REQUEST = "Analyze this property for ADU placement constraints"
DEFAULT_BOUNDARY_REQUEST = "Analyze this satellite image to identify property boundaries"


def viewport_line(center: Coordinate, zoom: float) -> str:
    return f"The image is centered at {center.lat}, {center.lng} with zoom level {zoom:g}."


def build_prompt(
    analysis_type: str,
    center: Coordinate,
    zoom: float,
    request: Optional[str] = None
) -> str:
    """Full prompt text for an analysis type"""
    if analysis_type == "constraints":
        return (
            f"{request or DEFAULT_CONSTRAINTS_REQUEST}\n\n"
            f"{CONSTRAINT_SCHEMA_PROMPT}\n\n"
            f"{viewport_line(center, zoom)}"
        )
    if analysis_type == "property":
        return (
            f"{request or DEFAULT_BOUNDARY_REQUEST}\n\n"
            f"{PROPERTY_BOUNDARY_PROMPT}\n\n"
            f"{viewport_line(center, zoom)}"
        )
    if analysis_type == "general":
        return GENERAL_ANALYSIS_PROMPT if not request else f"{request}\n\n{GENERAL_ANALYSIS_PROMPT}"
    raise ValueError(f"Unknown analysis type: {analysis_type!r}")
