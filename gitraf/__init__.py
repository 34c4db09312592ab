"""gitraf: SSH git gateway with push-triggered static site publishing"""

__version__ = "0.1.0"
