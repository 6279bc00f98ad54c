"""Turn ages, decay thresholds, the summary cache and the decay pipeline."""
