"""Greenhouse-gas emissions calculation and aggregation engine."""
