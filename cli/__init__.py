# GPSR Compliance Records - CLI
# Typer application wiring the core services to the terminal
