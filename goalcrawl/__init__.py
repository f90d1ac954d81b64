"""Goal-directed web crawling."""
