"""
Replace the stored project collection with sample projects.

Usage: python seed.py
"""
from typing import Dict, List

from pymongo.database import Database

import database
from config import get_settings
from logging_config import configure_logging, get_logger
from schemas import Project

logger = get_logger(__name__)

SAMPLE_PROJECTS: List[Dict] = [
    {
        "title": "E-Commerce Website",
        "description": "A full-stack e-commerce platform with user authentication, product catalog, "
                       "shopping cart, and payment integration.",
        "technologies": ["React", "Node.js", "MongoDB", "Express", "Stripe"],
        "image": "https://via.placeholder.com/400x250",
        "github_link": "https://github.com/yourusername/ecommerce",
        "live_link": "https://your-ecommerce-site.com",
        "category": "fullstack",
        "featured": True,
    },
    {
        "title": "Social Media Dashboard",
        "description": "A responsive dashboard for managing social media accounts with analytics, "
                       "post scheduling, and engagement tracking.",
        "technologies": ["React", "Redux", "Node.js", "MongoDB", "Chart.js"],
        "image": "https://via.placeholder.com/400x250",
        "github_link": "https://github.com/yourusername/social-dashboard",
        "live_link": "https://your-dashboard.com",
    },
    {
        "title": "Task Management App",
        "description": "A collaborative task management application with real-time updates, "
                       "team collaboration, and project tracking features.",
        "technologies": ["React", "Node.js", "MongoDB", "Socket.io", "Express"],
        "image": "https://via.placeholder.com/400x250",
        "github_link": "https://github.com/yourusername/task-manager",
        "live_link": "https://your-task-app.com",
    },
    {
        "title": "Weather Forecast App",
        "description": "Real-time weather forecast application with location-based weather data, "
                       "7-day forecast, and interactive maps.",
        "technologies": ["React", "OpenWeather API", "CSS3", "Geolocation"],
        "image": "https://via.placeholder.com/400x250",
        "github_link": "https://github.com/yourusername/weather-app",
        "live_link": "https://your-weather-app.com",
        "category": "web",
    },
]


def seed_projects(db: Database, projects: List[Dict] = SAMPLE_PROJECTS) -> List[str]:
    """Clear the project collection and insert the given projects"""
    collection = db[database.ProjectStore.collection_name]
    deleted = collection.delete_many({}).deleted_count
    logger.info("Cleared %d existing projects", deleted)

    ids = []
    for project in projects:
        doc = Project(**project).model_dump()
        ids.append(database.create_document(db, database.ProjectStore.collection_name, doc))
    logger.info("Inserted %d sample projects", len(ids))
    return ids


if __name__ == "__main__":
    settings = get_settings()
    configure_logging(settings)
    client, db = database.connect(settings)
    try:
        seed_projects(db)
    finally:
        database.close(client)
