"""Submit strategies: outcomes, policies and the engine."""
