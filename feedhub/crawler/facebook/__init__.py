from feedhub.crawler.facebook.scraper import FacebookCrawler

__all__ = ["FacebookCrawler"]
