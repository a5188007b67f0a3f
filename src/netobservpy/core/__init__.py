"""Pure core: query compilation, models, errors and result normalization."""
