"""sitemap_scout.parser: Разбор sitemap-документов и HTML-страниц."""
