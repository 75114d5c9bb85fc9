"""Exception type for contract violations.

Contract checks stop at the first violation. All violations raise the same
exception type, allowing callers to handle engine bugs uniformly.
"""


class ContractViolation(RuntimeError):
    """Raised when an engine contract is violated.

    This indicates a bug in engine or check logic, not bad user input or
    bad model data. It means a component did not honour the invariants it
    promised.

    Key distinction:
    - ValueError: Caller/config error (handled by Pydantic or the caller)
    - ContractViolation: Engine bug (programmer error)
    - Findings: Problems in the validated data itself
    """
    pass
