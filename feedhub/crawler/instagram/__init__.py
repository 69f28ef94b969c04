from feedhub.crawler.instagram.scraper import InstagramCrawler

__all__ = ["InstagramCrawler"]
