from feedhub.crawler.tiktok.scraper import TikTokCrawler

__all__ = ["TikTokCrawler"]
