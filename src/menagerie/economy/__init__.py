"""Economy reducers: shop transactions, NPC trades and creature breeding."""
