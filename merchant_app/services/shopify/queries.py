# merchant_app.services.shopify.queries
"""GraphQL documents used against the Shopify Admin API."""

PRIMARY_LOCATION = """
query PrimaryLocation {
  locations(first: 1) { nodes { id name } }
}
"""

SHOP_INFO = """
query ShopInfo {
  shop { id name myshopifyDomain email }
}
"""

INVENTORY_ITEMS_AT_LOCATION = """
query InventoryItemsAtLocation($locationID: ID!, $after: String) {
  inventoryItems(first: 100, after: $after) {
    edges {
      node {
        id
        tracked
        variant {
          id
          price
          product { id status totalInventory }
        }
        inventoryLevel(locationId: $locationID) {
          id
          quantities(names: ["available"]) { quantity }
        }
      }
    }
    pageInfo { endCursor hasNextPage }
  }
}
"""

PRODUCT_DETAIL = """
query ProductDetail($id: ID!) {
  product(id: $id) {
    id
    title
    description
    totalInventory
    status
    variants(first: 50) {
      nodes {
        id
        title
        price
        selectedOptions { name value }
        inventoryItem {
          id
          inventoryLevels(first: 1) {
            nodes {
              id
              location { id }
              quantities(names: ["available"]) { quantity }
            }
          }
        }
      }
    }
  }
}
"""

PRODUCT_FOR_INVENTORY_ITEM = """
query ProductForInventoryItem($id: ID!) {
  inventoryItem(id: $id) {
    id
    variant { id product { id } }
  }
}
"""

PRODUCTS_PAGE = """
query ProductsPage($cursor: String) {
  products(first: 100, after: $cursor) {
    edges {
      node {
        id
        title
        handle
        description
        productType
        totalInventory
        status
        variants(first: 100) {
          nodes {
            id
            title
            barcode
            sku
            price
            inventoryQuantity
            inventoryItem { id }
          }
        }
      }
    }
    pageInfo { endCursor hasNextPage }
  }
}
"""

PRODUCT_SET_STATUS = """
mutation SetProductStatus($id: ID!, $status: ProductStatus!) {
  productUpdate(product: {id: $id, status: $status}) {
    product { id status }
    userErrors { field message }
  }
}
"""

PUBLICATIONS = """
query Publications {
  publications(first: 50) { nodes { id name } }
}
"""

PUBLISH_PRODUCT = """
mutation PublishProduct($id: ID!, $input: [PublicationInput!]!) {
  publishablePublish(id: $id, input: $input) {
    userErrors { field message }
  }
}
"""

COLLECTION_BY_HANDLE = """
query CollectionByHandle($handle: String!) {
  collectionByHandle(handle: $handle) { id title handle }
}
"""

COLLECTION_ADD_PRODUCTS = """
mutation CollectionAddProducts($id: ID!, $productIds: [ID!]!) {
  collectionAddProductsV2(id: $id, productIds: $productIds) {
    job { id done }
    userErrors { field message }
  }
}
"""

COLLECTION_REORDER_PRODUCTS = """
mutation CollectionReorderProducts($id: ID!, $moves: [MoveInput!]!) {
  collectionReorderProducts(id: $id, moves: $moves) {
    job { id }
    userErrors { field message }
  }
}
"""

INVENTORY_SET_QUANTITIES = """
mutation SetInventoryQuantity($input: InventorySetQuantitiesInput!) {
  inventorySetQuantities(input: $input) {
    inventoryAdjustmentGroup {
      changes { name delta quantityAfterChange item { id } }
    }
    userErrors { field message }
  }
}
"""

PRODUCT_CREATE_WITH_MEDIA = """
mutation CreateProductWithMedia($input: ProductCreateInput!, $media: [CreateMediaInput!]) {
  productCreate(product: $input, media: $media) {
    userErrors { field message }
    product {
      id
      title
      status
      totalInventory
      options { id name position values }
      variants(first: 1) {
        nodes { id inventoryItem { id } }
      }
    }
  }
}
"""

PRODUCT_VARIANTS_BULK_CREATE = """
mutation ProductVariantsBulkCreate($productId: ID!, $variants: [ProductVariantsBulkInput!]!, $strategy: ProductVariantsBulkCreateStrategy) {
  productVariantsBulkCreate(productId: $productId, variants: $variants, strategy: $strategy) {
    userErrors { field message }
    productVariants {
      id
      title
      price
      selectedOptions { name value }
      inventoryItem {
        id
        inventoryLevels(first: 1) {
          nodes { id location { id } quantities(names: ["available"]) { quantity } }
        }
      }
    }
  }
}
"""

PRODUCT_VARIANTS_BULK_UPDATE = """
mutation ProductVariantsBulkUpdate($productId: ID!, $variants: [ProductVariantsBulkInput!]!) {
  productVariantsBulkUpdate(productId: $productId, variants: $variants, allowPartialUpdates: true) {
    productVariants { id price }
    userErrors { field message }
  }
}
"""

WEBHOOK_SUBSCRIPTIONS = """
query WebhookSubscriptions($first: Int!) {
  webhookSubscriptions(first: $first) {
    edges {
      node {
        id
        topic
        endpoint {
          __typename
          ... on WebhookHttpEndpoint { callbackUrl }
        }
      }
    }
  }
}
"""
