class HarnessException(Exception):
    pass


class ContainerCommandException(HarnessException):
    pass


class CheckFailedException(HarnessException):
    pass


class ConnectionTimeoutException(CheckFailedException):
    pass
