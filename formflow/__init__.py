"""FormFlow: conditional visibility engine for multi-step forms."""

from formflow.core.visibility import should_show

__all__ = ["should_show"]
