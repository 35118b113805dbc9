"""
Catalog app: the marketplace products and streamable tracks that the
settlement core reads (seller, price, artist, play counter).
"""
