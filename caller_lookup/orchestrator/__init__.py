"""Workflow orchestration for resolving numbers and reconciling the call log."""

from .cascade import LookupContext, ResolutionCascade, ResolverStep
from .service import ContactInfoService

__all__ = ["ContactInfoService", "LookupContext", "ResolutionCascade", "ResolverStep"]
