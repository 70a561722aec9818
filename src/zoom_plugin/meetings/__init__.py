"""Meeting start flow -- decision engine, recent-meeting lookback and posts."""
