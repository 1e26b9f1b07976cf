"""Scoring models: transaction graph, behavioral biometrics, risk scoring."""
