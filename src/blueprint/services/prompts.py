"""Prompt text for generation calls."""

from typing import Any


def build_analysis_prompt(description: str) -> str:
    return f"""You are a professional product manager and software architect.
The client has described their app idea. Analyze it and return a structured JSON response.

Client's idea:
"{description}"

Return the following JSON structure:

{{
  "appName": "Suggested app name",
  "appType": "MOBILE_APP | WEB_APP | SAAS | ECOMMERCE",
  "targetAudience": "Who will use this app",
  "coreProblem": "Main problem this app solves",
  "features": [
    {{
      "name": "Feature name",
      "description": "Detailed description",
      "category": "Authentication | Payment | etc",
      "priority": "MVP | HIGH | MEDIUM | LOW",
      "estimatedHours": 8,
      "complexity": 3
    }}
  ],
  "screens": [
    {{
      "name": "Screen name",
      "type": "LOGIN | HOME | DASHBOARD | etc",
      "order": 1,
      "description": "What this screen does"
    }}
  ],
  "estimatedComplexity": "simple | medium | complex",
  "suggestedTechStack": ["React Native", "Node.js", "PostgreSQL"]
}}

Return only JSON, nothing else."""


def build_wireframe_prompt(payload: dict[str, Any]) -> str:
    features = ", ".join(payload.get("feature_names") or [])
    return f"""You are a professional UI/UX designer. Create a wireframe component tree for the following app screen.

About the app: "{payload.get("description", "")}"
Screen name: "{payload.get("screen_name", "")}"
Screen type: "{payload.get("screen_type") or "GENERIC"}"
Available features: {features}

Return the wireframe in the following JSON structure:

{{
  "layout": "column",
  "backgroundColor": "#FFFFFF",
  "components": [
    {{
      "id": "unique-id-1",
      "type": "header | text | button | input | image | card | list | icon | divider | navbar | tabbar",
      "props": {{"text": "Content", "variant": "primary | secondary | outline"}},
      "position": {{"x": 0, "y": 0, "width": 375, "height": 48}},
      "children": []
    }}
  ]
}}

For each component:
- Provide a unique "id" (e.g.: "header-1", "btn-login", "input-email")
- Set position and size for a mobile screen (375x812)
- Write realistic text and placeholder content
- Include 8-15 components

Return only JSON, nothing else."""
