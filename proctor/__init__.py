"""
Proctored Assessment Session - Core Package

This package contains the components that run a timed, proctored test session:
- models: Test definition and configuration data structures
- ledger: MCQ answers, review flags and section navigation
- clock / violations: countdown timer and tab-switch accounting
- persistence: checkpoint stores for resuming after a reload
- orchestrator: the phase state machine tying everything together
"""

__version__ = "1.0.0"
