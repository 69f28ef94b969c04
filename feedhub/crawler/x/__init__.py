from feedhub.crawler.x.scraper import XCrawler

__all__ = ["XCrawler"]
