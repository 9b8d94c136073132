"""Crawl engine: materializer, scheduler and parallel coordination."""
