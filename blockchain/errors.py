"""
Pipeline Errors
Typed failures raised by the compiler, deployer and contract proxy

Every error carries a stable `kind`, a human-readable `detail` and, for
remote rejections, the contract's revert `reason` (None when the contract
reverted without one). Nothing in the pipeline retries on these; the caller
decides.
"""

from typing import Any, Dict, List, Optional, Sequence


class PipelineError(Exception):
    """Base class for all pipeline failures"""

    kind = 'pipeline_error'

    def __init__(self, detail: str, *, reason: Optional[str] = None, tx_hash: Optional[str] = None):
        self.detail = detail
        self.reason = reason
        self.tx_hash = tx_hash
        super().__init__(self._format())

    def _format(self) -> str:
        message = self.detail
        if self.reason:
            message += f" (reason: {self.reason})"
        if self.tx_hash:
            message += f" [tx {self.tx_hash}]"
        return message

    def to_dict(self) -> Dict[str, Any]:
        return {
            'kind': self.kind,
            'detail': self.detail,
            'reason': self.reason,
            'tx_hash': self.tx_hash
        }


class ConfigError(PipelineError):
    kind = 'config_error'


class CompilationError(PipelineError):
    """The compiler reported at least one fatal diagnostic"""

    kind = 'compilation_error'

    def __init__(self, detail: str, diagnostics: Sequence = ()):
        self.diagnostics = list(diagnostics)
        super().__init__(detail)

    @property
    def errors(self) -> List:
        return [d for d in self.diagnostics if d.is_fatal]

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data['diagnostics'] = [str(d) for d in self.diagnostics]
        return data


class ArtifactNotFoundError(PipelineError):
    """No artifact with the requested contract name"""

    kind = 'artifact_not_found'

    def __init__(self, contract_name: str, detail: Optional[str] = None, available: Sequence[str] = ()):
        self.contract_name = contract_name
        self.available = sorted(available)
        if detail is None:
            detail = f"No artifact for contract '{contract_name}'"
            if self.available:
                detail += f" (available: {', '.join(self.available)})"
        super().__init__(detail)


class EncodingError(PipelineError):
    """Arguments do not fit the ABI signature; raised before any network access"""

    kind = 'encoding_error'


class DecodingError(PipelineError):
    """Returned bytes do not match the declared return types"""

    kind = 'decoding_error'


class SimulationError(PipelineError):
    """The dry run used for gas estimation reverted"""

    kind = 'simulation_error'


class RevertError(PipelineError):
    """A transaction was mined with a reverted status"""

    kind = 'revert_error'

    def __init__(self, detail: str, *, reason: Optional[str] = None,
                 tx_hash: Optional[str] = None, receipt: Any = None):
        self.receipt = receipt
        super().__init__(detail, reason=reason, tx_hash=tx_hash)


class CallRevertedError(PipelineError):
    """A stateless call reverted"""

    kind = 'call_reverted'


class SubmissionError(PipelineError):
    """RPC or transport failure talking to the network endpoint"""

    kind = 'submission_error'


class TransactionTimeoutError(PipelineError, TimeoutError):
    """
    The endpoint did not answer, or a receipt did not appear, within the bound

    When raised while waiting for a receipt, `tx_hash` identifies the
    transaction that was broadcast and may still be mined.
    """

    kind = 'timeout'


class DeploymentRecordExistsError(PipelineError):
    kind = 'deployment_record_exists'


class DeploymentNotFoundError(PipelineError):
    kind = 'deployment_not_found'


REVERT_ERRORS = (SimulationError, RevertError, CallRevertedError)
