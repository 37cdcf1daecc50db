"""
Project catalog: portfolio projects from the GitHub API or the project collection
"""
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from config import Settings
from database import ProjectStore
from errors import UpstreamFetchError
from logging_config import get_logger
from schemas import GithubProject, StoredProject

logger = get_logger(__name__)

# Gradient colour pairs for the placeholder card images
PALETTE = [
    "667eea,764ba2",
    "00d4ff,00a8cc",
    "f093fb,f5576c",
    "4facfe,00f2fe",
    "43e97b,38f9d7",
]

NO_DESCRIPTION = "No description available"
MAX_TOPICS = 5


def format_repo_name(name: str) -> str:
    """'my-cool_repo' -> 'My Cool Repo'"""
    words = name.replace("-", " ").replace("_", " ").split(" ")
    return " ".join(word[:1].upper() + word[1:] for word in words)


def extract_technologies(repo: Dict[str, Any]) -> List[str]:
    techs = []
    if repo.get("language"):
        techs.append(repo["language"])
    techs.extend((repo.get("topics") or [])[:MAX_TOPICS])
    return list(dict.fromkeys(techs))


def project_image(repo_name: str, index: int) -> str:
    color_pair = PALETTE[index % len(PALETTE)]
    text = quote(repo_name, safe="-_.!~*'()")
    return f"https://via.placeholder.com/400x200/{color_pair}/ffffff?text={text}"


def repo_to_project(repo: Dict[str, Any], index: int) -> GithubProject:
    return GithubProject(
        id=repo["id"],
        title=format_repo_name(repo["name"]),
        description=repo.get("description") or NO_DESCRIPTION,
        technologies=extract_technologies(repo),
        image=project_image(repo["name"], index),
        github_link=repo["html_url"],
        live_link=repo.get("homepage") or None,
        stars=repo.get("stargazers_count") or 0,
        forks=repo.get("forks_count") or 0,
        language=repo.get("language"),
        updated_at=repo["updated_at"],
        created_at=repo.get("created_at"),
        topics=repo.get("topics") or [],
    )


def build_projects(repos: List[Dict[str, Any]]) -> List[GithubProject]:
    """Drop forks and private repos, map the rest, newest update first"""
    public = [r for r in repos if not r.get("fork") and not r.get("private")]
    projects = [repo_to_project(repo, i) for i, repo in enumerate(public)]
    projects.sort(key=lambda p: p.updated_at, reverse=True)
    return projects


class GithubProjectSource:
    """Lists the configured account's public, non-fork repositories"""

    def __init__(self, settings: Settings, client: Optional[httpx.Client] = None):
        self.username = settings.github_username
        self.token = settings.github_token
        self.api_url = settings.github_api_url.rstrip("/")
        self.timeout = settings.github_timeout
        self.client = client

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/vnd.github.v3+json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def fetch_repos(self) -> List[Dict[str, Any]]:
        if not self.username:
            raise UpstreamFetchError("GITHUB_USERNAME is not configured")

        url = f"{self.api_url}/users/{self.username}/repos"
        params = {"sort": "updated", "per_page": 100, "type": "owner"}
        try:
            if self.client is not None:
                response = self.client.get(url, params=params, headers=self._headers())
            else:
                with httpx.Client(timeout=self.timeout) as client:
                    response = client.get(url, params=params, headers=self._headers())
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            message = e.response.text[:200] or str(e)
            logger.error("GitHub API returned %s: %s", e.response.status_code, message)
            raise UpstreamFetchError(f"GitHub API error {e.response.status_code}: {message}") from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Error fetching GitHub repos: %s", e)
            raise UpstreamFetchError(str(e)) from e

    def list_projects(self) -> List[GithubProject]:
        return build_projects(self.fetch_repos())


class StoredProjectSource:
    """Projects kept in the 'project' collection, featured first"""

    def __init__(self, store: ProjectStore):
        self.store = store

    def list_projects(self) -> List[StoredProject]:
        return [StoredProject(**doc) for doc in self.store.list_projects()]


def get_project_source(settings: Settings, project_store: Optional[ProjectStore] = None,
                       client: Optional[httpx.Client] = None):
    if settings.projects_source == "database":
        if project_store is None:
            raise ValueError("projects_source=database requires a ProjectStore")
        return StoredProjectSource(project_store)
    return GithubProjectSource(settings, client=client)
