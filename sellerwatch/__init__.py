"""SellerWatch: alert detection and notification for Amazon seller accounts."""
