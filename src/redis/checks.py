"""
Assertions performed against containers of the image under test.
Each check raises `CheckFailedException` on failure.
"""
from pathlib import Path
import subprocess
from time import sleep

from config import Config, HarnessConfig
from src.exceptions import CheckFailedException, ConnectionTimeoutException
from src.redis.client import RedisCliClient
from src.util.container_manager import ContainerManager, run_image


ROFF_REQUESTS = (".TH", ".SH", ".PP", '.\\"')
""" Line prefixes, which identify a troff / groff formatted file. """


def check_connection(
        manager: ContainerManager,
        client: RedisCliClient,
        max_attempts: int,
        retry_interval: float
    ) -> None:
    """
    Polls the server in the container with `ping` until it replies.
    Prints container logs and raises, if maximum amount of attempts is exceeded.
    """
    print(f"  Testing Redis connection to {client.host} (password='{client.password or ''}')...")

    for attempt in range(max_attempts):
        print("    Trying to connect...")
        if client.ping():
            print("  Success!")
            print()
            return
        if attempt < max_attempts - 1:
            sleep(retry_interval)

    print("  Giving up: Failed to connect. Logs:")
    print(manager.logs())
    raise ConnectionTimeoutException(f"Failed to connect to Redis in '{manager.name}'.")


def check_redis(client: RedisCliClient) -> None:
    print(f"  Testing Redis (password='{client.password or ''}')")
    client.set("a", "1")
    client.set("b", "2")
    value = client.get("b")
    if value != "2":
        raise CheckFailedException(f"Expected value '2' for key 'b', got '{value}'.")
    print("  Success!")


def assert_login_access(client: RedisCliClient, success: bool) -> None:
    """ Checks, if `ping` with client's password is granted (`success` = True) or denied. """
    password = client.password or ""
    granted = client.ping()

    if granted and success:
        print(f"    '{password}' access granted as expected")
    elif not granted and not success:
        print(f"    '{password}' access denied as expected")
    else:
        raise CheckFailedException(f"'{password}' login assertion failed.")


def assert_local_access(manager: ContainerManager) -> None:
    """ Checks, if `redis-cli` can reach the server from inside the container. """
    result = manager.exec(["bash", "-c", "redis-cli ping"], check=False)
    if result.returncode != 0:
        raise CheckFailedException(
            f"Local access to Redis in '{manager.name}' failed:\n{result.stdout}{result.stderr}"
        )


def check_version_usage(manager: ContainerManager, harness: HarnessConfig) -> None:
    """
    Checks, if `redis-server --version` reports the expected version
    in a new container and in the running one (with non-interactive & interactive shells).
    """
    print("  Testing the image version usage")
    run_cmd = "redis-server --version"
    expected = harness.version

    outputs = {
        f"docker run {harness.image_name} /bin/bash -c": run_image(
            harness.image_name, ["/bin/bash", "-c", run_cmd], check=False, debug=harness.debug
        ),
        "docker exec /bin/bash -c": manager.exec(["/bin/bash", "-c", run_cmd], check=False),
        "docker exec /bin/sh -ic": manager.exec(["/bin/sh", "-ic", run_cmd], check=False)
    }

    for command, result in outputs.items():
        out = result.stdout + result.stderr
        if expected not in out:
            raise CheckFailedException(
                f"[{command} \"{run_cmd}\"] Expected '{expected}', got '{out}'."
            )


def assert_container_creation_fails(manager: ContainerManager, timeout: float) -> None:
    """
    Starts a container, which is expected to exit with a non-zero code
    within `timeout` seconds.
    """
    manager.run()
    try:
        exit_code = manager.wait(timeout)
    except subprocess.TimeoutExpired:
        raise CheckFailedException(
            f"Container '{manager.name}' is still running after {timeout} seconds."
        )

    if exit_code == 0:
        raise CheckFailedException(f"Container '{manager.name}' exited successfully.")
    manager.print_debug(f"Container failed as expected with exit code {exit_code}.")


def is_roff(content: str) -> bool:
    """ Checks, if `content` is formatted as a troff / groff document. """
    lines = [line for line in content.splitlines() if line.strip()]
    if not lines:
        return False
    return lines[0].startswith(ROFF_REQUESTS) or any(line.startswith(".SH") for line in lines)


def check_documentation(harness: HarnessConfig, config: Config, tmp_dir: str | Path) -> None:
    """
    Extracts the help file from the image and checks, if it includes
    the required terms and uses the correct format.
    """
    print("  Testing documentation in the container image")
    help_file = config.doc.help_file

    result = run_image(
        harness.image_name, ["/bin/bash", "-c", f"cat {help_file}"],
        check=False, debug=harness.debug
    )
    if result.returncode != 0:
        raise CheckFailedException(f"Failed to read {help_file}: {result.stderr.strip()}")

    extracted = Path(tmp_dir) / Path(help_file).name
    extracted.write_text(result.stdout)
    content = extracted.read_text()

    for term in config.doc.required_terms:
        if term not in content:
            raise CheckFailedException(f"File {help_file} does not include '{term}'.")

    if not is_roff(content):
        raise CheckFailedException(f"{help_file} is not in troff or groff format.")

    print("  Success!")
    print()
