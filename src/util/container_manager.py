from pathlib import Path
import shlex
import shutil
import subprocess

from src.exceptions import ContainerCommandException


def run_subprocess(
        args: list[str],
        check: bool = True,
        timeout: float | None = None,
        debug: bool = False
    ) -> subprocess.CompletedProcess:
    if debug:
        print(f"+ {shlex.join(args)}")
    try:
        result = subprocess.run(
            args,
            check=check,
            capture_output=True,
            text=True,
            timeout=timeout
        )
        return result
    except subprocess.CalledProcessError as e:
        print(e.stdout)
        print(e.stderr)
        raise


def run_image(
        image: str,
        command_args: list[str],
        run_args: list[str] | None = None,
        check: bool = True,
        timeout: float | None = None,
        debug: bool = False
    ) -> subprocess.CompletedProcess:
    """ Runs a one-off container from `image`, which is removed after it exits. """
    args = ["docker", "run", "--rm"] + (run_args or []) + [image] + command_args
    return run_subprocess(args, check=check, timeout=timeout, debug=debug)


class ContainerManager:
    """
    Utility class with common container management functions.
    Container ID is stored in a CID file named after the container
    inside `cid_dir`, which is later used for cleanup.
    """
    def __init__(
            self,
            name: str,
            cid_dir: str | Path,
            image: str = "",
            run_args: list[str] | None = None,
            run_command_args: list[str] | None = None,
            debug: bool = False
        ):
        self.name = name
        """ Container name (also the name of its CID file). """
        self.cid_dir = Path(cid_dir)
        """ Directory with CID files of the containers created during the run. """
        self.image = image
        """ Image name of the container. """
        self.run_args = run_args or []
        """
        List of arg names & values for `docker run` command
        (env variables, user, volumes, etc.).
        """
        self.run_command_args = run_command_args or []
        """ Additional args passed to the container. """
        self._debug = debug

    def print_debug(self, msg: str):
        if self._debug:
            print(f"{self.name} > {msg}")

    def _run(self, args: list[str], check: bool = True, timeout: float | None = None):
        return run_subprocess(args, check=check, timeout=timeout, debug=self._debug)

    @property
    def cid_file(self) -> Path:
        return self.cid_dir / self.name

    def exists(self) -> bool:
        """ Check if the container was created (its CID file is not empty). """
        exists = self.cid_file.exists() and len(self.cid_file.read_text().strip()) > 0
        self.print_debug(f"Container exists: {exists}.")
        return exists

    @property
    def cid(self) -> str:
        """ ID of the container read from its CID file. """
        if not self.exists():
            raise ContainerCommandException(f"Container '{self.name}' was not created.")
        return self.cid_file.read_text().strip()

    def run(self) -> str:
        """ Creates & starts a new detached container and returns its ID. """
        if self.exists():
            raise ContainerCommandException(f"Container '{self.name}' already exists.")

        args: list[str] = [
            "docker", "run",
            "--cidfile", str(self.cid_file),
            "-d"
        ] + self.run_args + [self.image] + self.run_command_args

        self._run(args)
        cid = self.cid
        print(f"Created container {cid}")
        return cid

    def ip_address(self) -> str:
        """ Returns the IP address of the container in the default network. """
        result = self._run([
            "docker", "inspect",
            "--format", "{{.NetworkSettings.IPAddress}}",
            self.cid
        ])
        ip = result.stdout.strip()
        if not ip:
            raise ContainerCommandException(f"Container '{self.name}' has no IP address.")
        self.print_debug(f"Container IP address: {ip}.")
        return ip

    def is_running(self) -> bool:
        """ Check if the container is running. """
        result = self._run([
            "docker", "inspect",
            "--format", "{{.State.Running}}",
            self.cid
        ])
        is_running = result.stdout.strip() == "true"
        self.print_debug(f"Container is running: {is_running}.")
        return is_running

    def exit_code(self) -> int:
        """ Returns the exit code of the container (0 for a running container). """
        result = self._run([
            "docker", "inspect",
            "--format", "{{.State.ExitCode}}",
            self.cid
        ])
        return int(result.stdout.strip())

    def exec(self, args: list[str], check: bool = True) -> subprocess.CompletedProcess:
        """ Runs a command inside the running container. """
        return self._run(["docker", "exec", self.cid] + args, check=check)

    def logs(self) -> str:
        result = self._run(["docker", "logs", self.cid], check=False)
        return result.stdout + result.stderr

    def wait(self, timeout: float) -> int:
        """
        Waits for the container to exit and returns its exit code.
        Raises `subprocess.TimeoutExpired`, if it keeps running after `timeout` seconds.
        """
        result = self._run(["docker", "wait", self.cid], timeout=timeout)
        return int(result.stdout.strip())

    def stop(self) -> None:
        """ Stop the container if it's running. """
        self._run(["docker", "stop", self.cid])
        self.print_debug("Stopped the container.")

    def remove(self) -> None:
        """ Remove the container with its volumes and its CID file. """
        self._run([
            "docker", "rm",
            "--force", "--volumes",
            self.cid
        ])
        self.cid_file.unlink()
        self.print_debug("Removed the container.")


def cleanup_containers(cid_dir: str | Path, debug: bool = False) -> None:
    """
    Stops & removes all containers with CID files in `cid_dir`
    and deletes the directory.
    Logs of containers, which exited with a non-zero code, are printed.
    """
    cid_dir = Path(cid_dir)
    if not cid_dir.exists():
        return

    for cid_file in sorted(cid_dir.iterdir()):
        manager = ContainerManager(cid_file.name, cid_dir, debug=debug)
        # Keep going on errors, so that other containers are removed as well
        try:
            if manager.exists():
                _remove_container(manager)
        except (OSError, subprocess.SubprocessError, ContainerCommandException) as e:
            print(f"Failed to clean up container '{cid_file.name}': {e}")
        cid_file.unlink(missing_ok=True)

    shutil.rmtree(cid_dir)


def _remove_container(manager: ContainerManager) -> None:
    if manager.is_running():
        manager.stop()

    exit_code = manager.exit_code()
    if exit_code != 0:
        print(f"Inspecting container {manager.cid} ({manager.name}), exit status: {exit_code}")
        print(manager.logs())

    manager.remove()
