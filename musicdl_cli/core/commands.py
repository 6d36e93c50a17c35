"""
The long-running operations the controller can request.

A command is an immutable snapshot of everything its operation needs. It is
run by the `CommandDispatcher` against the shared `Services` and never sees
controller state.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, ClassVar, Type

from musicdl_cli.exceptions import MusicDlError
from musicdl_cli.models.candidate import Candidate
from musicdl_cli.models.config import AppConfig
from musicdl_cli.models.tags import TagSet
from musicdl_cli.storage.app_dirs import AppDirs

from .asset_fetcher import AssetFetcher
from .events import (
    Completion,
    DependenciesChecked,
    DownloadFinished,
    ReleasesFound,
    SearchFinished,
    SearchResults,
    TracklistFetched,
    URLInfoFetched,
)
from .interfaces import MetadataProvider, ToolPaths, ToolRunner

log = logging.getLogger(__name__)


@dataclass
class Services:
    """The collaborators commands run against."""

    config: AppConfig
    dirs: AppDirs
    api: MetadataProvider
    tool_factory: Callable[[ToolPaths], ToolRunner]
    locate: Callable[[], ToolPaths]

    def tools(self, paths: ToolPaths) -> ToolRunner:
        return self.tool_factory(paths)

    def asset_fetcher(self, paths: ToolPaths) -> AssetFetcher:
        return AssetFetcher(
            self.tools(paths),
            self.api,
            self.dirs,
            audio_timeout=self.config.download_timeout,
            lookup_timeout=self.config.http_timeout,
            merge_timeout=self.config.download_timeout,
        )


class Command:
    """Base class: one operation, one completion message."""

    completion: ClassVar[Type[Completion]] = Completion
    label: ClassVar[str] = "Operation"

    async def run(self, services: Services) -> Any:
        raise NotImplementedError

    def completed(self, value: Any) -> Completion:
        return self.completion(value=value)

    def failed(self, error: MusicDlError) -> Completion:
        return self.completion(error=error)


@dataclass(frozen=True)
class CheckDependencies(Command):
    completion = DependenciesChecked
    label = "Dependency check"

    async def run(self, services: Services) -> ToolPaths:
        return await asyncio.to_thread(services.locate)


@dataclass(frozen=True)
class ResolveURL(Command):
    paths: ToolPaths
    url: str

    completion = URLInfoFetched
    label = "URL lookup"

    async def run(self, services: Services) -> Candidate:
        return await services.tools(self.paths).resolve_url(self.url)


@dataclass(frozen=True)
class ParallelSearch(Command):
    """Searches videos and releases at the same time; either failure fails both."""

    paths: ToolPaths
    query: str

    completion = SearchFinished
    label = "Search"

    async def run(self, services: Services) -> SearchResults:
        videos, releases = await asyncio.gather(
            services.tools(self.paths).search_videos(
                self.query, services.config.search_limit
            ),
            services.api.search_releases(self.query),
            return_exceptions=True,
        )
        for result in (videos, releases):
            if isinstance(result, BaseException):
                raise result
        log.debug(f"Search '{self.query}': {len(videos)} videos, {len(releases)} releases")
        return SearchResults(videos=tuple(videos), releases=tuple(releases))


@dataclass(frozen=True)
class SearchReleases(Command):
    query: str

    completion = ReleasesFound
    label = "Release search"

    async def run(self, services: Services) -> list:
        return list(await services.api.search_releases(self.query))


@dataclass(frozen=True)
class FetchTracklist(Command):
    release_id: str

    completion = TracklistFetched
    label = "Track list lookup"

    async def run(self, services: Services) -> list:
        return list(await services.api.fetch_tracklist(self.release_id))


@dataclass(frozen=True)
class DownloadTagged(Command):
    paths: ToolPaths
    video: Candidate
    release: Candidate
    tags: TagSet

    completion = DownloadFinished
    label = "Download"

    async def run(self, services: Services):
        fetcher = services.asset_fetcher(self.paths)
        return await fetcher.fetch_tagged(self.video, self.release, self.tags)


@dataclass(frozen=True)
class DownloadTagless(Command):
    paths: ToolPaths
    video: Candidate

    completion = DownloadFinished
    label = "Download"

    async def run(self, services: Services):
        return await services.asset_fetcher(self.paths).fetch_tagless(self.video)
