"""Pure quiz engine: session state machine, timers, answers."""
