"""
Skill search — Client for the remote skills directory used by `find`.

The directory answers `GET {api_base}/api/search?q=<query>&limit=<n>` with a
JSON body holding a list of skills under "skills" (or a bare list). Entries
are read leniently: unknown keys are ignored, entries without a name or
source are skipped.
"""

from dataclasses import dataclass

import httpx
import structlog

from .config.schema import SearchConfig
from .errors import SearchError

logger = structlog.get_logger()

_USER_AGENT = "skil-cli"


@dataclass(frozen=True)
class SearchResult:
    """A skill listed by the remote directory."""

    name: str
    source: str
    description: str = ""
    installs: int | None = None

    @property
    def install_command(self) -> str:
        return f"skil add {self.source} --skill {self.name}"


class SkillSearchClient:
    """Queries the remote skills directory.

    Usage:
        client = SkillSearchClient(settings.search)
        results = client.search("pdf")
    """

    def __init__(self, config: SearchConfig, client: httpx.Client | None = None) -> None:
        self.config = config
        self._client = client
        self.log = logger.bind(component="search", api_base=config.api_base)

    def search(self, query: str = "", limit: int | None = None) -> list[SearchResult]:
        """Search skills by keyword; an empty query lists popular skills.

        Raises:
            SearchError: Network failure, non-2xx status or a body that is not JSON.
        """
        url = f"{self.config.api_base.rstrip('/')}/api/search"
        params = {"q": query, "limit": str(limit or self.config.limit)}

        owns_client = self._client is None
        http = self._client or httpx.Client(
            timeout=self.config.timeout,
            headers={"User-Agent": _USER_AGENT},
            follow_redirects=True,
        )
        try:
            response = http.get(url, params=params)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            raise SearchError(
                f"Search failed: HTTP {e.response.status_code} from {url}"
            ) from e
        except httpx.HTTPError as e:
            raise SearchError(f"Search failed: {e}") from e
        except ValueError as e:
            raise SearchError(f"Search failed: invalid response from {url}") from e
        finally:
            if owns_client:
                http.close()

        results = parse_results(payload)
        self.log.info("search.complete", query=query, count=len(results))
        return results


def parse_results(payload) -> list[SearchResult]:
    """Extract SearchResults from a decoded response body."""
    if isinstance(payload, dict):
        items = payload.get("skills") or payload.get("results") or []
    elif isinstance(payload, list):
        items = payload
    else:
        return []

    results: list[SearchResult] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        name = item.get("name")
        source = item.get("source") or item.get("topSource") or item.get("id")
        if not isinstance(name, str) or not isinstance(source, str) or not name or not source:
            continue
        installs = item.get("installs")
        results.append(
            SearchResult(
                name=name,
                source=source,
                description=item.get("description") if isinstance(item.get("description"), str) else "",
                installs=installs if isinstance(installs, int) else None,
            )
        )
    return results
