"""
Container manager & subprocess wrapper tests.
"""
if __name__ == "__main__":
    import os, sys
    sys.path.insert(0, os.path.abspath(os.path.join(__file__, "../" * 3)))
    from tests.util import run_pytest_tests

import subprocess

import pytest

from src.exceptions import ContainerCommandException
from src.util.container_manager import ContainerManager, cleanup_containers, run_image, run_subprocess
from tests.fake_docker import FakeDocker


def test_run_subprocess_success(capsys):
    result = run_subprocess(["sh", "-c", "echo output"], debug=True)
    assert result.returncode == 0
    assert result.stdout == "output\n"
    assert "+ sh -c 'echo output'" in capsys.readouterr().out


def test_run_subprocess_failure(capsys):
    with pytest.raises(subprocess.CalledProcessError):
        run_subprocess(["sh", "-c", "echo out; echo err >&2; exit 3"])

    # Output of the failed command is printed
    out = capsys.readouterr().out
    assert "out" in out
    assert "err" in out


def test_run_subprocess_without_check():
    result = run_subprocess(["sh", "-c", "exit 3"], check=False)
    assert result.returncode == 3


def test_run_subprocess_timeout():
    with pytest.raises(subprocess.TimeoutExpired):
        run_subprocess(["sleep", "5"], timeout=0.1)


def test_run_image(fake_docker: FakeDocker):
    result = run_image("image", ["/bin/bash", "-c", "redis-server --version"], run_args=["-u", "1000"])
    assert "v=7.2.4" in result.stdout
    assert fake_docker.calls[-1] == [
        "docker", "run", "--rm", "-u", "1000", "image", "/bin/bash", "-c", "redis-server --version"
    ]


def test_run_container(fake_docker: FakeDocker, cid_dir):
    manager = ContainerManager("name", cid_dir, "image", ["-e", "REDIS_PASSWORD=pass"])
    assert not manager.exists()

    cid = manager.run()
    assert manager.exists()
    assert (cid_dir / "name").read_text() == cid
    assert manager.cid == cid
    assert fake_docker.calls[-1] == [
        "docker", "run", "--cidfile", str(cid_dir / "name"), "-d",
        "-e", "REDIS_PASSWORD=pass", "image"
    ]
    assert fake_docker.containers[cid].password == "pass"


def test_run_existing_container(fake_docker: FakeDocker, cid_dir):
    manager = ContainerManager("name", cid_dir, "image")
    manager.run()
    with pytest.raises(ContainerCommandException):
        manager.run()


def test_cid_of_not_created_container(fake_docker: FakeDocker, cid_dir):
    manager = ContainerManager("name", cid_dir, "image")
    with pytest.raises(ContainerCommandException):
        manager.cid


def test_container_state(fake_docker: FakeDocker, cid_dir):
    manager = ContainerManager("name", cid_dir, "image")
    cid = manager.run()

    assert manager.ip_address() == fake_docker.containers[cid].ip
    assert manager.is_running()
    assert manager.exit_code() == 0
    assert manager.exec(["bash", "-c", "redis-cli ping"]).stdout == "PONG\n"
    assert cid in manager.logs()

    manager.stop()
    assert not manager.is_running()

    # Stopped container has no IP address
    with pytest.raises(ContainerCommandException):
        manager.ip_address()


def test_wait(fake_docker: FakeDocker, cid_dir):
    running = ContainerManager("running", cid_dir, "image")
    running.run()
    with pytest.raises(subprocess.TimeoutExpired):
        running.wait(timeout=1)

    failing = ContainerManager("failing", cid_dir, "image", ["-e", "REDIS_PASSWORD=pass with space"])
    failing.run()
    assert failing.wait(timeout=1) == 1


def test_remove(fake_docker: FakeDocker, cid_dir):
    manager = ContainerManager("name", cid_dir, "image")
    cid = manager.run()
    manager.remove()

    assert cid not in fake_docker.containers
    assert not manager.exists()
    assert not (cid_dir / "name").exists()


def test_print_debug(fake_docker: FakeDocker, cid_dir, capsys):
    ContainerManager("quiet", cid_dir, "image").exists()
    assert capsys.readouterr().out == ""

    ContainerManager("verbose", cid_dir, "image", debug=True).exists()
    assert "verbose > Container exists: False." in capsys.readouterr().out


def test_cleanup_containers(fake_docker: FakeDocker, cid_dir, capsys):
    running = ContainerManager("running", cid_dir, "image")
    running_cid = running.run()
    failed = ContainerManager("failed", cid_dir, "image", ["-e", "REDIS_PASSWORD=pass with space"])
    failed_cid = failed.run()
    (cid_dir / "empty").write_text("")

    cleanup_containers(cid_dir)

    assert fake_docker.containers == {}
    assert not cid_dir.exists()

    # Logs are printed only for the container with a non-zero exit code
    out = capsys.readouterr().out
    assert f"logs of {failed_cid}" in out
    assert f"logs of {running_cid}" not in out


def test_cleanup_continues_after_errors(fake_docker: FakeDocker, cid_dir, capsys):
    removed = ContainerManager("removed_externally", cid_dir, "image")
    removed_cid = removed.run()
    other = ContainerManager("other", cid_dir, "image")
    other.run()

    # Remove the first container bypassing the manager
    del fake_docker.containers[removed_cid]

    cleanup_containers(cid_dir)
    assert fake_docker.containers == {}
    assert not cid_dir.exists()
    assert "Failed to clean up container 'removed_externally'" in capsys.readouterr().out


def test_cleanup_continues_after_missing_executable(
        fake_docker: FakeDocker,
        cid_dir,
        monkeypatch: pytest.MonkeyPatch,
        capsys
    ):
    stuck = ContainerManager("a_stuck", cid_dir, "image")
    stuck_cid = stuck.run()
    other = ContainerManager("b_other", cid_dir, "image")
    other_cid = other.run()

    stop = fake_docker._stop

    def failing_stop(args, timeout):
        if args[-1] == stuck_cid:
            raise FileNotFoundError(2, "No such file or directory", "docker")
        return stop(args, timeout)

    monkeypatch.setattr(fake_docker, "_stop", failing_stop)

    cleanup_containers(cid_dir)
    assert other_cid not in fake_docker.containers
    assert not cid_dir.exists()
    assert "Failed to clean up container 'a_stuck'" in capsys.readouterr().out


def test_cleanup_of_missing_directory(fake_docker: FakeDocker, tmp_path):
    cleanup_containers(tmp_path / "missing")
    assert fake_docker.calls == []


if __name__ == "__main__":
    run_pytest_tests(__file__) # type: ignore[reportPossiblyUnboundVariable]
