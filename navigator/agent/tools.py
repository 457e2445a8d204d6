"""
Agent tools: named capabilities with a pydantic input schema and an invoke callable.

Tools: web_search (Tavily, or DuckDuckGo without a key), get_weather_forecast (Open-Meteo),
github_repo_search, file_analyst, wikipedia_search, arxiv_search, mdn_web_search.

Each tool returns text or a JSON-serialisable value. Missing arguments and failed
network calls come back as "Error: ..." text, never as exceptions, so the executor
can fold every result into past_steps the same way.
"""

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Callable, Iterable, Iterator
from urllib.parse import quote

import httpx
from pydantic import BaseModel, Field

from navigator.agent.llm import LLMClient, get_default_llm
from navigator.core.config import (
    ARXIV_MAX_RESULTS,
    ARXIV_QUERY_URL,
    FILE_ANALYST_MAX_CHARS,
    GITHUB_MAX_RESULTS,
    GITHUB_SEARCH_URL,
    GITHUB_TOKEN,
    OPEN_METEO_FORECAST,
    TAVILY_API_KEY,
    TAVILY_SEARCH_URL,
    TOOLS_HTTP_TIMEOUT,
    WEB_SEARCH_MAX_RESULTS,
    WIKIPEDIA_SUMMARY_URL,
)
from navigator.ingest.loader import read_file_text
from navigator.services.uploads import is_upload_path

logger = logging.getLogger(__name__)

FILE_ANALYST = "file_analyst"
USER_AGENT = "knowledge-navigator/0.1"
ATOM_NS = {"atom": "http://www.w3.org/2005/Atom"}


# --- Input schemas ---

class WebSearchInput(BaseModel):
    query: str = Field(..., description="The search query for the web.")


class WeatherInput(BaseModel):
    latitude: float = Field(..., description="The latitude of the location.")
    longitude: float = Field(..., description="The longitude of the location.")


class GithubSearchInput(BaseModel):
    query: str = Field(..., description="The search query for GitHub repositories.")


class FileAnalystInput(BaseModel):
    file_path: str = Field(..., description="The path to the file to be analyzed.")
    query: str = Field(..., description="The specific question to ask about the file's content.")


class WikipediaInput(BaseModel):
    query: str = Field(..., description="The search term for Wikipedia.")


class ArxivInput(BaseModel):
    query: str = Field(..., description="The search query for ArXiv.")


class MdnSearchInput(BaseModel):
    query: str = Field(..., description="The search query for MDN.")


@dataclass(frozen=True)
class Tool:
    """A registry entry. Immutable; built once at startup."""

    name: str
    description: str
    input_schema: type[BaseModel]
    func: Callable[[dict[str, Any]], Any]

    def validate(self, arguments: dict[str, Any]) -> dict[str, Any]:
        """Coerce arguments through input_schema. Raises pydantic.ValidationError."""
        return self.input_schema.model_validate(arguments).model_dump()

    def required_fields(self) -> dict[str, Any]:
        """Required argument names mapped to their annotated types."""
        return {
            name: field.annotation
            for name, field in self.input_schema.model_fields.items()
            if field.is_required()
        }

    def invoke(self, arguments: dict[str, Any]) -> Any:
        logger.info("[tools] invoke name=%r arguments=%r", self.name, arguments)
        return self.func(arguments)

    def describe(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.input_schema.model_json_schema(),
        }


class ToolRegistry:
    """Ordered catalog of tools keyed by name. Read-only after construction."""

    def __init__(self, tools: Iterable[Tool]) -> None:
        self._tools: dict[str, Tool] = {}
        for tool in tools:
            if tool.name in self._tools:
                raise ValueError(f"Tool '{tool.name}' is already registered")
            self._tools[tool.name] = tool
        logger.info("[tools] registry built tools=%s", list(self._tools))

    def get(self, name: str | None) -> Tool | None:
        if not name:
            return None
        return self._tools.get(name)

    def names(self) -> list[str]:
        return list(self._tools)

    def catalog(self) -> list[dict[str, Any]]:
        """Name, description and JSON schema for every tool, in registration order."""
        return [t.describe() for t in self._tools.values()]

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __iter__(self) -> Iterator[Tool]:
        return iter(self._tools.values())

    def __len__(self) -> int:
        return len(self._tools)


# --- Implementations ---

def _query_arg(args: dict[str, Any]) -> str:
    return str(args.get("query") or "").strip()


def _tavily_search(query: str) -> Any:
    payload = {"query": query, "max_results": WEB_SEARCH_MAX_RESULTS, "api_key": TAVILY_API_KEY}
    headers = {"Authorization": f"Bearer {TAVILY_API_KEY}", "Content-Type": "application/json"}
    try:
        with httpx.Client(timeout=TOOLS_HTTP_TIMEOUT) as client:
            response = client.post(TAVILY_SEARCH_URL, json=payload, headers=headers)
        if response.status_code != 200:
            return f"Error: web search returned {response.status_code}."
        data = response.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.warning("[tools] tavily search failed: %s", e)
        return f"Error: web search failed: {e}"
    if not isinstance(data, dict):
        return "Error: unexpected response from web search."
    results = data.get("results") or []
    if not results:
        return "No results found."
    return [
        {"title": r.get("title", ""), "url": r.get("url", ""), "content": r.get("content", "")}
        for r in results[:WEB_SEARCH_MAX_RESULTS]
    ]


def _ddgs_search(query: str) -> str:
    from ddgs import DDGS
    try:
        with DDGS() as ddgs:
            results = list(ddgs.text(query, max_results=WEB_SEARCH_MAX_RESULTS))
    except Exception as e:
        logger.warning("[tools] ddgs search failed: %s", e)
        return f"Error: web search failed: {e}"
    if not results:
        return "No results found."
    lines = []
    for i, r in enumerate(results, 1):
        title = (r.get("title") or "").strip()
        body = (r.get("body") or "").strip()
        href = (r.get("href") or "").strip()
        lines.append(f"{i}. {title}\n{body}\nURL: {href}")
    return "\n\n".join(lines)


def _search_web(query: str) -> Any:
    """Tavily when TAVILY_API_KEY is configured, otherwise DuckDuckGo."""
    if TAVILY_API_KEY:
        return _tavily_search(query)
    return _ddgs_search(query)


def _web_search(args: dict[str, Any]) -> Any:
    query = _query_arg(args)
    if not query:
        return "Error: The tool was called without a 'query' in the input."
    logger.info("[tools] web_search query=%r", query)
    return _search_web(query)


def _mdn_web_search(args: dict[str, Any]) -> Any:
    query = _query_arg(args)
    if not query:
        return "Error: The tool was called without a 'query' in the input."
    logger.info("[tools] mdn_web_search query=%r", query)
    return _search_web(f"site:developer.mozilla.org {query}")


# WMO weather codes (abbreviated) for Open-Meteo
_WMO_CODES = {
    0: "Clear sky",
    1: "Mainly clear",
    2: "Partly cloudy",
    3: "Overcast",
    45: "Fog",
    48: "Depositing rime fog",
    51: "Light drizzle",
    53: "Moderate drizzle",
    55: "Dense drizzle",
    61: "Slight rain",
    63: "Moderate rain",
    65: "Heavy rain",
    71: "Slight snow",
    73: "Moderate snow",
    75: "Heavy snow",
    80: "Slight rain showers",
    81: "Moderate rain showers",
    82: "Violent rain showers",
    95: "Thunderstorm",
    96: "Thunderstorm with slight hail",
    99: "Thunderstorm with heavy hail",
}


def _get_weather_forecast(args: dict[str, Any]) -> Any:
    """Current conditions from Open-Meteo (free, no API key). Temperatures in Fahrenheit."""
    lat = args.get("latitude")
    lon = args.get("longitude")
    if lat is None or lon is None:
        return "Error: The tool was called without 'latitude' and 'longitude' in the input."
    try:
        lat, lon = float(lat), float(lon)
    except (TypeError, ValueError):
        return f"Error: invalid coordinates latitude={lat!r} longitude={lon!r}."
    logger.info("[tools] get_weather_forecast lat=%s lon=%s", lat, lon)
    params = {
        "latitude": lat,
        "longitude": lon,
        "current": "temperature_2m,relative_humidity_2m,apparent_temperature,rain,showers,wind_speed_10m,weather_code",
        "temperature_unit": "fahrenheit",
    }
    try:
        with httpx.Client(timeout=TOOLS_HTTP_TIMEOUT) as client:
            response = client.get(OPEN_METEO_FORECAST, params=params)
        if response.status_code != 200:
            return f"Error: weather API returned {response.status_code}."
        body = response.json()
    except httpx.TimeoutException:
        return "Error getting weather forecast: request timed out."
    except (httpx.HTTPError, ValueError) as e:
        logger.warning("[tools] get_weather_forecast failed: %s", e)
        return f"Error getting weather forecast: {e}"
    if not isinstance(body, dict):
        return "Error: unexpected response from the weather API."
    current = body.get("current")
    if not isinstance(current, dict) or not current:
        return "Error getting weather forecast: no current conditions returned."
    current = dict(current)
    code = current.get("weather_code")
    if code is not None:
        current["conditions"] = _WMO_CODES.get(code, f"Weather code {code}")
    return current


def _github_repo_search(args: dict[str, Any]) -> Any:
    query = _query_arg(args)
    if not query:
        return "Error: The tool was called without a 'query' in the input."
    logger.info("[tools] github_repo_search query=%r", query)
    headers = {"Accept": "application/vnd.github+json", "User-Agent": USER_AGENT}
    if GITHUB_TOKEN:
        headers["Authorization"] = f"token {GITHUB_TOKEN}"
    try:
        with httpx.Client(timeout=TOOLS_HTTP_TIMEOUT) as client:
            response = client.get(
                GITHUB_SEARCH_URL,
                params={"q": query, "per_page": GITHUB_MAX_RESULTS},
                headers=headers,
            )
        if response.status_code != 200:
            return f"Error: GitHub search returned {response.status_code}."
        data = response.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.warning("[tools] github_repo_search failed: %s", e)
        return f"Error searching GitHub: {e}"
    if not isinstance(data, dict):
        return "Error: unexpected response from GitHub."
    items = data.get("items") or []
    if not items:
        return f"No GitHub repositories found for: {query}"
    return [
        {"full_name": it.get("full_name"), "url": it.get("html_url"), "description": it.get("description")}
        for it in items[:GITHUB_MAX_RESULTS]
    ]


def _make_file_analyst(llm: LLMClient | None) -> Callable[[dict[str, Any]], Any]:
    def _file_analyst(args: dict[str, Any]) -> str:
        file_path = str(args.get("file_path") or "").strip()
        query = _query_arg(args)
        if not file_path or not query:
            return "Error: The tool was called without 'file_path' and 'query' in the input."
        if not is_upload_path(file_path):
            logger.warning("[tools] file_analyst refused path outside uploads: %s", file_path)
            return "Error: file_analyst can only read files uploaded with the request."
        logger.info("[tools] file_analyst file_path=%s query=%r", file_path, query)
        try:
            content = read_file_text(file_path)
        except Exception as e:
            logger.warning("[tools] file_analyst could not read %s: %s", file_path, e)
            return f"Error reading or analyzing file: {e}"
        if len(content) > FILE_ANALYST_MAX_CHARS:
            logger.info("[tools] file_analyst truncating content %d -> %d chars", len(content), FILE_ANALYST_MAX_CHARS)
            content = content[:FILE_ANALYST_MAX_CHARS]
        prompt = (
            f"File content:\n\n{content}\n\n"
            f"Please answer the following question based on the file: {query}"
        )
        client = llm if llm is not None else get_default_llm()
        return client.complete(prompt)

    return _file_analyst


def _wikipedia_search(args: dict[str, Any]) -> str:
    query = _query_arg(args)
    if not query:
        return "Error: The tool was called without a 'query' in the input."
    logger.info("[tools] wikipedia_search query=%r", query)
    url = WIKIPEDIA_SUMMARY_URL + quote(query.replace(" ", "_"), safe="")
    try:
        with httpx.Client(timeout=TOOLS_HTTP_TIMEOUT, follow_redirects=True) as client:
            response = client.get(url, headers={"User-Agent": USER_AGENT})
        if response.status_code != 200:
            return f'Could not find a Wikipedia page for "{query}".'
        data = response.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.warning("[tools] wikipedia_search failed: %s", e)
        return f'Could not find a Wikipedia page for "{query}".'
    if not isinstance(data, dict):
        return "Error: unexpected response from Wikipedia."
    extract = str(data.get("extract") or "").strip()
    if not extract:
        return f'Could not find a Wikipedia page for "{query}".'
    return f'Summary for "{query}":\n{extract}'


def _entry_text(entry: ET.Element, tag: str) -> str:
    node = entry.find(f"atom:{tag}", ATOM_NS)
    return " ".join((node.text or "").split()) if node is not None else ""


def _arxiv_search(args: dict[str, Any]) -> Any:
    query = _query_arg(args)
    if not query:
        return "Error: The tool was called without a 'query' in the input."
    logger.info("[tools] arxiv_search query=%r", query)
    params = {"search_query": f"all:{query}", "start": 0, "max_results": ARXIV_MAX_RESULTS}
    try:
        with httpx.Client(timeout=TOOLS_HTTP_TIMEOUT, follow_redirects=True) as client:
            response = client.get(ARXIV_QUERY_URL, params=params)
        if response.status_code != 200:
            return f"Error: ArXiv returned {response.status_code}."
        feed = ET.fromstring(response.text)
    except httpx.HTTPError as e:
        logger.warning("[tools] arxiv_search failed: %s", e)
        return f"Error searching ArXiv: {e}"
    except ET.ParseError as e:
        return f"Error: could not parse ArXiv response: {e}"
    entries = feed.findall("atom:entry", ATOM_NS)
    if not entries:
        return f'No papers found on ArXiv for the query: "{query}"'
    papers = []
    for entry in entries:
        authors = [
            (a.findtext("atom:name", default="", namespaces=ATOM_NS) or "").strip()
            for a in entry.findall("atom:author", ATOM_NS)
        ]
        papers.append({
            "title": _entry_text(entry, "title"),
            "summary": _entry_text(entry, "summary"),
            "authors": authors,
            "url": _entry_text(entry, "id"),
        })
    return papers


def build_registry(llm: LLMClient | None = None) -> ToolRegistry:
    """
    Build the tool catalog. `llm` is used by file_analyst; when None it falls back
    to the process-wide default client at call time.
    """
    return ToolRegistry([
        Tool(
            name="web_search",
            description="Searches the web for current or general information.",
            input_schema=WebSearchInput,
            func=_web_search,
        ),
        Tool(
            name="get_weather_forecast",
            description="Gets the current weather forecast for a given location.",
            input_schema=WeatherInput,
            func=_get_weather_forecast,
        ),
        Tool(
            name="github_repo_search",
            description="Searches GitHub for repositories matching a query.",
            input_schema=GithubSearchInput,
            func=_github_repo_search,
        ),
        Tool(
            name=FILE_ANALYST,
            description="Analyzes the content of a user-provided file.",
            input_schema=FileAnalystInput,
            func=_make_file_analyst(llm),
        ),
        Tool(
            name="wikipedia_search",
            description="Searches Wikipedia for a given query and returns a summary of the page.",
            input_schema=WikipediaInput,
            func=_wikipedia_search,
        ),
        Tool(
            name="arxiv_search",
            description="Searches the ArXiv pre-print server for scientific papers.",
            input_schema=ArxivInput,
            func=_arxiv_search,
        ),
        Tool(
            name="mdn_web_search",
            description="Searches the Mozilla Developer Network (MDN) for web development documentation.",
            input_schema=MdnSearchInput,
            func=_mdn_web_search,
        ),
    ])


@lru_cache(maxsize=1)
def get_default_registry() -> ToolRegistry:
    """Process-wide registry bound to the default LLM client."""
    return build_registry()
