"""
Named test cases for the Redis image.
Each case creates containers, waits for the server and runs the checks;
containers are cleaned up by the test suite.
"""
import os
from pathlib import Path
import tempfile
from typing import Callable

from config import Config, HarnessConfig
from src.exceptions import CheckFailedException
from src.redis.checks import (
    assert_container_creation_fails, assert_local_access, assert_login_access,
    check_connection, check_documentation, check_redis, check_version_usage
)
from src.redis.client import RedisCliClient
from src.redis.container import get_redis_container_manager, run_redis_container
from src.util.container_manager import ContainerManager


PERSISTENT_KEY = "persistent_key"
PERSISTENT_VALUE = "persistent_value"


class CaseContext:
    """ Settings & working directories shared by test cases of a single run. """
    def __init__(
            self,
            harness: HarnessConfig,
            config: Config,
            cid_dir: str | Path,
            tmp_dir: str | Path
        ):
        self.harness = harness
        self.config = config
        self.cid_dir = Path(cid_dir)
        """ Directory with CID files of created containers. """
        self.tmp_dir = Path(tmp_dir)
        """ Directory for data volumes & extracted files. """

    def client(self, manager: ContainerManager, password: str | None) -> RedisCliClient:
        """ Returns a `redis-cli` client for the server in the container of `manager`. """
        return RedisCliClient(self.harness.image_name, manager.ip_address(), password, self.harness.debug)

    def wait_for_server(self, manager: ContainerManager, client: RedisCliClient) -> None:
        check_connection(
            manager, client,
            self.config.connection.max_attempts,
            self.config.connection.retry_interval
        )

    def make_data_dir(self, prefix: str) -> Path:
        """ Creates a host directory to be mounted as Redis data directory. """
        return Path(tempfile.mkdtemp(prefix=f"{prefix}_", dir=self.tmp_dir))


def run_tests(
        ctx: CaseContext,
        name: str,
        password: str | None = None,
        user: int | None = None
    ) -> None:
    """ Runs a container with provided settings & checks its connectivity and authentication. """
    manager = run_redis_container(
        name, ctx.harness, ctx.config, ctx.cid_dir,
        password=password, user=user
    )
    client = ctx.client(manager, password)
    ctx.wait_for_server(manager, client)

    check_version_usage(manager, ctx.harness)
    check_redis(client)

    print("  Testing login accesses")
    assert_login_access(client, True)
    if password:
        assert_login_access(client.with_password(f"{password}_foo"), False)
    assert_local_access(manager)

    print("  Success!")
    print()


def run_container_creation_tests(ctx: CaseContext) -> None:
    print("  Testing image entrypoint usage")
    for i, password in enumerate(ctx.config.redis.invalid_passwords):
        manager = get_redis_container_manager(
            f"invalid_creation_{i}", ctx.harness, ctx.config, ctx.cid_dir,
            password=password
        )
        assert_container_creation_fails(manager, ctx.config.redis.container_creation_timeout)
    print("  Success!")


def run_tests_no_root(ctx: CaseContext) -> None:
    run_tests(ctx, "no_root", password=ctx.config.redis.password)


def run_tests_no_pass(ctx: CaseContext) -> None:
    run_tests(ctx, "no_pass")


def run_tests_no_pass_altuid(ctx: CaseContext) -> None:
    run_tests(ctx, "no_pass_altuid", user=ctx.config.redis.alternate_uid)


def run_tests_no_root_altuid(ctx: CaseContext) -> None:
    run_tests(
        ctx, "no_root_altuid",
        password=ctx.config.redis.password,
        user=ctx.config.redis.alternate_uid
    )


def _write_persistent_data(ctx: CaseContext, name: str, data_dir: Path, password: str) -> None:
    """ Writes a key into a container with a mounted `data_dir`, saves it to disk & removes the container. """
    manager = run_redis_container(
        name, ctx.harness, ctx.config, ctx.cid_dir,
        password=password, user=os.getuid(), volume=data_dir
    )
    client = ctx.client(manager, password)
    ctx.wait_for_server(manager, client)

    client.set(PERSISTENT_KEY, PERSISTENT_VALUE)
    client.save()

    manager.stop()
    manager.remove()


def _assert_persistent_data(client: RedisCliClient) -> None:
    value = client.get(PERSISTENT_KEY)
    if value != PERSISTENT_VALUE:
        raise CheckFailedException(
            f"Expected '{PERSISTENT_VALUE}' for key '{PERSISTENT_KEY}' after restart, got '{value}'."
        )


def run_persistence_test(ctx: CaseContext) -> None:
    print("  Testing data persistence")
    data_dir = ctx.make_data_dir("persistence")
    password = ctx.config.redis.password

    _write_persistent_data(ctx, "persistence_write", data_dir, password)

    # Read the data in a new container with the same volume
    manager = run_redis_container(
        "persistence_read", ctx.harness, ctx.config, ctx.cid_dir,
        password=password, user=os.getuid(), volume=data_dir
    )
    client = ctx.client(manager, password)
    ctx.wait_for_server(manager, client)
    _assert_persistent_data(client)

    print("  Success!")
    print()


def run_change_password_test(ctx: CaseContext) -> None:
    print("  Testing password change")
    data_dir = ctx.make_data_dir("change_password")
    old_password = ctx.config.redis.password
    new_password = ctx.config.redis.changed_password

    _write_persistent_data(ctx, "change_password_old", data_dir, old_password)

    # Start a new container on the same volume with another password
    manager = run_redis_container(
        "change_password_new", ctx.harness, ctx.config, ctx.cid_dir,
        password=new_password, user=os.getuid(), volume=data_dir
    )
    client = ctx.client(manager, new_password)
    ctx.wait_for_server(manager, client)

    assert_login_access(client.with_password(old_password), False)
    assert_login_access(client, True)
    _assert_persistent_data(client)

    print("  Success!")
    print()


def run_doc_test(ctx: CaseContext) -> None:
    check_documentation(ctx.harness, ctx.config, ctx.tmp_dir)


TEST_CASES: dict[str, Callable[[CaseContext], None]] = {
    "run_container_creation_tests": run_container_creation_tests,
    "run_tests_no_root": run_tests_no_root,
    "run_tests_no_pass": run_tests_no_pass,
    "run_tests_no_pass_altuid": run_tests_no_pass_altuid,
    "run_tests_no_root_altuid": run_tests_no_root_altuid,
    "run_persistence_test": run_persistence_test,
    "run_change_password_test": run_change_password_test,
    "run_doc_test": run_doc_test,
}
""" Test case functions by name (in the same order as `config.TEST_NAMES`). """
