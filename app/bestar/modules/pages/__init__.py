"""
Pages module: CMS-managed static pages in zh/en/fr.
"""
