"""Infraestrutura do app: resiliência e fila de updates."""
