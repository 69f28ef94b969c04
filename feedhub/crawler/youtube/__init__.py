from feedhub.crawler.youtube.scraper import YouTubeCrawler

__all__ = ["YouTubeCrawler"]
