from newsion.models.article import Article, Origin

__all__ = ['Article', 'Origin']
