from src.util.container_manager import run_image


class RedisCliClient:
    """
    Runs `redis-cli` from the image under test against a Redis server
    in another container.
    """

    def __init__(
            self,
            image: str,
            host: str,
            password: str | None = None,
            debug: bool = False
        ):
        self.image = image
        self.host = host
        self.password = password
        self._debug = debug

    def with_password(self, password: str | None) -> "RedisCliClient":
        """ Returns a client for the same server with another `password`. """
        return RedisCliClient(self.image, self.host, password, self._debug)

    def _cli_args(self, args: tuple[str, ...]) -> list[str]:
        cli_args = ["redis-cli", "-h", self.host]
        if self.password:
            cli_args += ["-a", self.password, "--no-auth-warning"]
        return cli_args + list(args)

    def command(self, *args: str, check: bool = False) -> str:
        """ Runs a Redis command and returns its stripped output. """
        result = run_image(self.image, self._cli_args(args), check=check, debug=self._debug)
        return result.stdout.strip()

    def ping(self) -> bool:
        return self.command("ping") == "PONG"

    def set(self, key: str, value: str) -> str:
        return self.command("set", key, value, check=True)

    def get(self, key: str) -> str:
        return self.command("get", key, check=True)

    def save(self) -> str:
        """ Synchronously saves the dataset to disk. """
        return self.command("save", check=True)
