from feedhub.crawler.telegram.scraper import TelegramCrawler

__all__ = ["TelegramCrawler"]
