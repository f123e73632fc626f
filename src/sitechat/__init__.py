"""sitechat: crawl a website, index its pages, and answer questions from them."""

__version__ = "0.1.0"
