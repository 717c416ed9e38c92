"""Pure domain core: DTOs, calendar, rollup and schedule arithmetic, codes."""
