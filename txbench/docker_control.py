from __future__ import annotations

import contextlib
import logging
import time
from typing import Iterable, List

import docker
from docker.errors import DockerException, NotFound
from docker.models.containers import Container

from .errors import BenchmarkError

LOGGER = logging.getLogger("txbench.docker")


class ServiceManager:
    """Restart the target service containers so every sweep point starts fresh."""

    def __init__(
        self,
        container_names: Iterable[str],
        client=None,
        stop_timeout_seconds: int = 0,
        startup_grace_seconds: float = 20.0,
        settle_seconds: float = 5.0,
        poll_interval_seconds: float = 1.0,
    ) -> None:
        self._names = list(container_names)
        self._client = client if client is not None else docker.from_env()
        self._stop_timeout_seconds = stop_timeout_seconds
        self._startup_grace_seconds = startup_grace_seconds
        self._settle_seconds = settle_seconds
        self._poll_interval_seconds = poll_interval_seconds

    @property
    def container_names(self) -> list[str]:
        return list(self._names)

    def restart(self) -> None:
        if not self._names:
            return
        LOGGER.info("Restarting service container(s): %s", ", ".join(self._names))
        containers = self._containers()
        for container in containers:
            try:
                container.restart(timeout=self._stop_timeout_seconds)
            except DockerException as exc:
                raise BenchmarkError(f"failed to restart container {container.name}: {exc}") from exc
        self._wait_for_startup(containers)

    def _containers(self) -> List[Container]:
        containers: List[Container] = []
        for name in self._names:
            try:
                containers.append(self._client.containers.get(name))
            except NotFound as exc:
                raise BenchmarkError(f"service container {name!r} not found") from exc
        return containers

    def _wait_for_startup(self, containers: List[Container]) -> None:
        deadline = time.time() + self._startup_grace_seconds
        while time.time() < deadline:
            if all(self._is_container_healthy(container) for container in containers):
                time.sleep(self._settle_seconds)
                return
            time.sleep(self._poll_interval_seconds)
        LOGGER.warning("Service containers may not be fully ready before load starts")

    def _is_container_healthy(self, container: Container) -> bool:
        with contextlib.suppress(DockerException):
            container.reload()
            status = container.attrs.get("State", {})
            if status.get("Health"):
                return status["Health"]["Status"] == "healthy"
            return status.get("Running", False)
        return False


__all__ = ["ServiceManager"]
