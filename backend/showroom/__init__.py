"""Vehicle showroom POS backend."""
