# src/locobuild/core/context/build_context.py
import logging
import shlex
from typing import Any, List, Optional

from locobuild.core.managers.build_record_manager import BuildRecordManager
from locobuild.core.managers.config_manager import ConfigManager
from locobuild.core.services.git_service import GitService
from locobuild.core.services.process_service import ProcessService
from locobuild.core.services.site_build_service import (
    CommandSiteBuilder,
    CopySiteBuilder,
    SiteBuildService,
)

logger = logging.getLogger(__name__)


class BuildContext:
    """
    Holds the services shared by every handler during one run, plus the
    long-running background services (watchers, servers) started by it.
    """

    def __init__(self, config: ConfigManager, processes: Optional[ProcessService] = None):
        self.config = config
        self.processes = processes or ProcessService(timeout=config.get_nested("process.timeout"))
        self.git = GitService(self.processes)
        self.records = BuildRecordManager(config.get_nested("build_record.filename", ".locobuild-build-record.json"))

        build_command = config.get_nested("build.command")
        if isinstance(build_command, str):
            build_command = shlex.split(build_command)
        if build_command:
            builder: Any = CommandSiteBuilder(build_command, self.processes)
        else:
            builder = CopySiteBuilder()
        self.site = SiteBuildService(
            builder,
            site_config_file=config.get_nested("build.site_config_file", "site.json"),
            exclude=config.get_nested("build.exclude", []),
            keep=[self.records.filename],
            extensions=config.get_nested("build.extensions", {}),
        )
        self._background: List[Any] = []

    def add_background(self, service: Any) -> None:
        """Registers a service with a ``stop()`` method to be stopped by close()."""
        self._background.append(service)

    @property
    def background(self) -> List[Any]:
        return list(self._background)

    def close(self) -> None:
        while self._background:
            service = self._background.pop()
            try:
                service.stop()
            except Exception as e:
                logger.warning("Failed to stop %r: %s", service, e)

    def __repr__(self) -> str:
        return f"<BuildContext background={len(self._background)}>"
