"""
Reference data module.

Provides the fasting plan catalog, the physiological stage timeline, and
normalization of plan and timeline entries loaded from configuration.
"""
