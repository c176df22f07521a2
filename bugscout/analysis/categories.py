"""Issue category catalogue used to classify and title issues."""

ISSUE_CATEGORIES: list[dict] = [
    {
        "id": "errors",
        "name": "Errors & exceptions",
        "issue_types": [
            {"id": "js-frontend-errors", "name": "JavaScript frontend errors",
             "examples": ["TypeError: Cannot read properties of undefined", "ReferenceError in event handler"]},
            {"id": "network-api-failures", "name": "Network / API failures",
             "examples": ["fetch failed with 500", "request timed out while saving"]},
            {"id": "unhandled-rejections", "name": "Unhandled promise rejections",
             "examples": ["Uncaught (in promise) Error", "async handler rejected without catch"]},
        ],
    },
    {
        "id": "ux",
        "name": "UX & frustration",
        "issue_types": [
            {"id": "rage-clicks", "name": "Rage clicks",
             "examples": ["repeated clicks on a submit button", "user hammering a disabled control"]},
            {"id": "dead-clicks", "name": "Dead clicks",
             "examples": ["click on a card that looks clickable", "button with no handler"]},
            {"id": "js-frontend-errors", "name": "Errors surfacing in the UI",
             "examples": ["blank panel after an exception", "component fails to render"]},
            {"id": "broken-navigation", "name": "Broken navigation",
             "examples": ["link leads to 404", "back button loses state"]},
        ],
    },
    {
        "id": "performance",
        "name": "Performance",
        "issue_types": [
            {"id": "slow-interactions", "name": "Slow or unresponsive UI",
             "examples": ["no loading state during a long request", "click handler blocks main thread"]},
        ],
    },
    {
        "id": "forms",
        "name": "Forms & input",
        "issue_types": [
            {"id": "form-validation", "name": "Form validation problems",
             "examples": ["submit silently rejected", "validation message never shown"]},
        ],
    },
]


def categories_summary() -> str:
    """Short catalogue text for prompts: categories, types and two examples each."""
    parts = ["Issue categories (use to classify and title issues):"]
    for category in ISSUE_CATEGORIES:
        parts.append(f"{category['name']} ({category['id']}):")
        for issue_type in category["issue_types"]:
            examples = "; ".join(issue_type["examples"][:2])
            parts.append(f"  - {issue_type['id']}: {issue_type['name']} - {examples}")
    return "\n".join(parts)
