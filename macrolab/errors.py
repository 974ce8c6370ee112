# macrolab/errors.py


class ConfigurationError(ValueError):
    """Raised for setup mistakes (bad engine rules, mismatched vectors, bad parameters)."""


def unavailable(reason: str, **extra) -> dict:
    # Soft "not available" result; data problems never raise.
    out = {"ok": False, "reason": reason}
    out.update(extra)
    return out


def is_available(result) -> bool:
    if result is None:
        return False
    if isinstance(result, dict):
        return bool(result.get("ok", True))
    return True
