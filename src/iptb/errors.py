"""
Error taxonomy for the IPTB testbed

Every failure surfaced to the operator derives from IptbError so the CLI
can report it uniformly.
"""


class IptbError(Exception):
    """Base class for all testbed errors"""


class ConfigurationError(IptbError):
    """Root directory or settings could not be resolved"""


class AlreadyExists(IptbError):
    """Nodes already exist and overwrite was neither forced nor confirmed"""


class UnsupportedTopology(IptbError):
    """Unknown bootstrap strategy"""

    def __init__(self, strategy: str):
        super().__init__(f"unrecognized bootstrapping option: {strategy}")
        self.strategy = strategy


class UnknownNode(IptbError):
    """Requested node index is not provisioned"""

    def __init__(self, index: int):
        super().__init__(f"node {index} does not exist")
        self.index = index


class LaunchError(IptbError):
    """Daemon could not be spawned or its pid could not be persisted"""


class InitFailed(IptbError):
    """One or more node repositories failed to initialize

    `results` holds the NodeResult of every node, failed or not.
    """

    def __init__(self, results):
        self.results = list(results)
        self.failed = [r.index for r in self.results if not r.ok]
        super().__init__(f"repository initialization failed for nodes {self.failed}")


class NotRunning(IptbError):
    """No live process is recorded for the node"""


class AlreadyRunning(IptbError):
    """The node's recorded process is still alive"""

    def __init__(self, index: int, pid: int):
        super().__init__(f"node {index} is already running (pid {pid})")
        self.index = index
        self.pid = pid


class ReadinessError(IptbError):
    """Base class for readiness probe outcomes"""


class IdentityMismatch(ReadinessError):
    """Endpoint answered with a missing or unexpected peer identity"""


class Timeout(ReadinessError):
    """Node did not become ready within the retry budget"""


class ProtocolError(ReadinessError):
    """Endpoint answered with a document that could not be decoded"""


class UnknownAttribute(IptbError):
    """Unrecognized attribute requested from `get`"""

    def __init__(self, attr: str):
        super().__init__(f"unrecognized attribute: {attr}")
        self.attr = attr


class NodeCountOverflow(RuntimeError):
    """Directory scan exceeded its hard limit; node layout is corrupt"""
