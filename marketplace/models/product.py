from dataclasses import dataclass, field

from marketplace.models.base import BaseModel, Record, utc_now_iso


@dataclass
class Product(Record):
    product_id: str
    name: str
    price: float
    description: str = ""
    category: str = ""
    image: str = ""
    user_id: str = None
    stock: int = None
    created_at: str = None
    updated_at: str = None
    deleted_at: str = None
    version: int = field(default=1, compare=False)

    id_field = 'product_id'

    def has_stock_for(self, quantity):
        return self.stock is None or quantity <= self.stock


class ProductModel(BaseModel):
    collection_name = 'products'
    record_class = Product
    required_fields = ('name', 'price')
    immutable_fields = ('product_id', 'created_at', 'user_id')

    def create(self, product_data):
        self._check_required(product_data)
        now = utc_now_iso()
        product = Product(
            product_id=self.collection.new_id(),
            name=product_data['name'],
            price=product_data['price'],
            description=product_data.get('description') or "",
            category=product_data.get('category') or "",
            image=product_data.get('image') or "",
            user_id=product_data.get('user_id'),
            stock=product_data.get('stock'),
            created_at=now,
            updated_at=now,
        )
        return self._insert(product)

    def list_products(self, page=1, limit=10, category=None):
        query = self.collection.query().live()
        if category:
            query = query.where('category', category)
        query = query.order_by('created_at', descending=True)
        return self.paginate(query, page, limit)

    def find_by_name(self, name):
        snapshots = self.collection.query().live().where_contains('name', name).order_by('created_at', descending=True).stream()
        return [Product.from_document(s) for s in snapshots]

    def find_by_owner(self, user_id):
        return self.find_all_by('user_id', user_id)
