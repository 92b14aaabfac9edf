"""
Sample events used to seed an empty catalog in demos and development.

Seeding is an explicit startup step; reading the catalog never seeds.
"""
import logging
from typing import Any, Dict, List

from ..core.catalog import EventCatalog
from ..core.models import Event

logger = logging.getLogger(__name__)


def get_sample_event_drafts() -> List[Dict[str, Any]]:
    """
    Returns the drafts of the two demo events.

    Returns:
        List of drafts accepted by EventCatalog.create_event:
        - an individual conference with a free-text form
        - a team hackathon (max 4) with a team name and a category select
    """
    return [
        {
            "name": "Tech Conference 2025",
            "description": "Annual technology conference featuring industry leaders",
            "date": "2025-03-15",
            "location": "Convention Center, Main Hall",
            "event_type": "individual",
            "form_fields": [
                {"label": "Full Name", "type": "text", "required": True},
                {"label": "Email", "type": "email", "required": True},
                {"label": "Company", "type": "text", "required": False},
                {"label": "Dietary Restrictions", "type": "textarea", "required": False},
            ],
        },
        {
            "name": "Hackathon 2025",
            "description": "48-hour coding competition",
            "date": "2025-04-20",
            "location": "Innovation Hub",
            "event_type": "team",
            "max_team_size": 4,
            "form_fields": [
                {"label": "Team Name", "type": "text", "required": True},
                {"label": "Team Leader Name", "type": "text", "required": True},
                {"label": "Team Leader Email", "type": "email", "required": True},
                {"label": "Team Size", "type": "number", "required": True},
                {
                    "label": "Project Category",
                    "type": "select",
                    "required": True,
                    "options": ["AI/ML", "Web Dev", "Mobile", "IoT", "Other"],
                },
            ],
        },
    ]


def seed_sample_events(catalog: EventCatalog) -> List[Event]:
    """
    Creates the sample events if the catalog is empty.

    Returns:
        The events created (empty when the catalog already had data)
    """
    if catalog.list_events():
        logger.debug("Catalog not empty, skipping sample data")
        return []

    created = [catalog.create_event(draft) for draft in get_sample_event_drafts()]
    logger.info(f"Sample events seeded: count={len(created)}")
    return created
