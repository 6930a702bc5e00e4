"""Wizard state store."""

from .store import LAST_STEP, STEP_TITLES, WizardState, WizardStep, WizardStore

__all__ = ['LAST_STEP', 'STEP_TITLES', 'WizardState', 'WizardStep', 'WizardStore']
