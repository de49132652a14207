from pathlib import Path

from config import Config, HarnessConfig
from src.util.container_manager import ContainerManager


def get_redis_container_manager(
        name: str,
        harness: HarnessConfig,
        config: Config,
        cid_dir: str | Path,
        password: str | None = None,
        user: int | str | None = None,
        volume: str | Path | None = None
    ) -> ContainerManager:
    run_args: list[str] = []

    # Password for the default user
    if password:
        run_args += ["-e", f"REDIS_PASSWORD={password}"]

    # Run as an arbitrary user
    if user is not None:
        run_args += ["-u", str(user)]

    # Mount a host directory as Redis data directory
    if volume is not None:
        run_args += ["-v", f"{volume}:{config.redis.data_dir}:Z"]

    return ContainerManager(
        name=name,
        cid_dir=cid_dir,
        image=harness.image_name,
        run_args=run_args,
        debug=harness.debug
    )


def run_redis_container(
    name: str,
    harness: HarnessConfig,
    config: Config,
    cid_dir: str | Path,
    **kwargs
) -> ContainerManager:
    redis_container_manager = get_redis_container_manager(name, harness, config, cid_dir, **kwargs)
    redis_container_manager.run()
    return redis_container_manager
