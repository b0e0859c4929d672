"""Session state machine, difficulty policy and turn orchestration."""
