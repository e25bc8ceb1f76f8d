from driftwatch.probe.models import ProbeError, ProbeHTTPError, ProbeTimeoutError, ProbeResponse
from driftwatch.probe.fetcher import RemoteProbe
